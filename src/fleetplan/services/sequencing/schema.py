"""Shape of the structured answers returned by the sequencing model."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..timewindows import is_clock_time

DEPOT_MARKER = "DEPOT"


def _validate_clock(value: str) -> str:
    if not isinstance(value, str) or not is_clock_time(value):
        raise ValueError(f"expected HH:MM clock time, got {value!r}")
    return value.strip()


class OracleStop(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    arr: str
    act: Literal["D", "B", "I", "R"]
    dur: int = Field(ge=0)
    km: float = Field(ge=0)
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    msg: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("act", mode="before")
    @classmethod
    def _normalize_action(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("arr")
    @classmethod
    def _check_arrival(cls, value: str) -> str:
        return _validate_clock(value)


class OracleRoute(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    start_time: str
    total_km: float = Field(alias="totaal_km", ge=0)
    stops: List[OracleStop]

    @field_validator("start_time")
    @classmethod
    def _check_start(cls, value: str) -> str:
        return _validate_clock(value)


class OracleAdvice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    debtorName: str
    currentWindow: str
    suggestedWindow: str
    reason: str
    potentialSavingEur: float
    impactDescription: str
