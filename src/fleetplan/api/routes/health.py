"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/oracle", status_code=status.HTTP_200_OK)
def health_oracle() -> dict:
    """Report whether the route-sequencing service is configured."""
    from ...services.sequencing.oracle_client import check_health

    return {"service": "oracle", "configured": check_health()}
