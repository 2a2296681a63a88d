"""Planning endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...errors import (
    OracleConfigError,
    OracleResponseInvalidError,
    OracleUnavailableError,
    RateLimitExceededError,
)
from ...schemas.planning import (
    AdviceModel,
    AdviceRequest,
    OptimizeRequest,
    OptimizeResponse,
    RecalculateRequest,
    TripModel,
)
from ...services.planning import service as planning_service

router = APIRouter(prefix="/planning", tags=["planning"])

logger = logging.getLogger(__name__)


def _rate_limited(exc: RateLimitExceededError) -> HTTPException:
    retry_after = max(1, -(-exc.retry_after_ms // 1000))
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=str(exc),
        headers={"Retry-After": str(retry_after)},
    )


@router.post("/optimize", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeRequest) -> OptimizeResponse:
    try:
        result = planning_service.optimize(
            orders=[order.to_domain() for order in payload.orders],
            fleet=[vehicle.to_domain() for vehicle in payload.fleet],
            config=payload.config.to_domain() if payload.config else None,
            caller_id=payload.caller_id,
        )
    except RateLimitExceededError as exc:
        raise _rate_limited(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except OracleConfigError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except OracleUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing trips: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize trips: {str(exc)}",
        ) from exc
    return OptimizeResponse.from_result(result)


@router.post("/recalculate", response_model=TripModel, status_code=status.HTTP_200_OK)
def recalculate(payload: RecalculateRequest) -> TripModel:
    """Re-time one trip in the dispatcher's stop order."""
    try:
        trip = planning_service.recalculate_single_trip(
            vehicle=payload.vehicle.to_domain(),
            stop_order=payload.stop_order,
            config=payload.config.to_domain() if payload.config else None,
            orders=[order.to_domain() for order in payload.orders],
            caller_id=payload.caller_id,
        )
    except RateLimitExceededError as exc:
        raise _rate_limited(exc) from exc
    except OracleConfigError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except (OracleResponseInvalidError, OracleUnavailableError) as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error recalculating trip: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to recalculate trip: {str(exc)}",
        ) from exc
    return TripModel.from_trip(trip)


@router.post("/advice", response_model=list[AdviceModel], status_code=status.HTTP_200_OK)
def advice(payload: AdviceRequest) -> list[AdviceModel]:
    suggestions = planning_service.generate_savings_advice(
        trips=[trip.to_trip() for trip in payload.trips],
        orders=[order.to_domain() for order in payload.orders],
        caller_id=payload.caller_id,
    )
    return [AdviceModel.from_advice(item) for item in suggestions]
