"""Domain models for delivery orders, vehicles and planning settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config import settings


class VehicleType(str, Enum):
    TRUCK = "TRUCK"
    VAN = "VAN"


class PlanningStrategy(str, Enum):
    """Ordering policy for the order pool and the oracle instructions."""

    JIT = "JIT"
    DENSITY = "DENSITY"

    @classmethod
    def _missing_(cls, value: object) -> "PlanningStrategy | None":
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


@dataclass(slots=True)
class Order:
    """A delivery demand at one address within one time window."""

    order_id: str
    name: str
    address: str
    postcode: str
    city: str
    time_window_start: str
    time_window_end: str
    service_minutes: int
    chilled: int = 0
    frozen: int = 0
    debtor_number: Optional[str] = None
    fixed_route_id: Optional[str] = None

    @property
    def total_load(self) -> int:
        return self.chilled + self.frozen

    @property
    def time_window(self) -> str:
        return f"{self.time_window_start}-{self.time_window_end}"


@dataclass(slots=True)
class Vehicle:
    """A fleet member with a chilled/frozen capacity and its cost rates."""

    vehicle_id: str
    vehicle_type: VehicleType
    chilled_capacity: int
    frozen_capacity: int
    hourly_rate: float
    consumption_per_100km: float
    fuel_price_per_unit: float
    monthly_fixed_cost: float = 0.0
    co2_per_km: float = 0.0
    is_available: bool = True
    license_plate: Optional[str] = None
    brand: Optional[str] = None
    fuel_type: Optional[str] = None
    max_range_km: Optional[float] = None

    @property
    def total_capacity(self) -> int:
        return self.chilled_capacity + self.frozen_capacity

    def can_carry(self, chilled: int, frozen: int) -> bool:
        return chilled <= self.chilled_capacity and frozen <= self.frozen_capacity


@dataclass(slots=True)
class Depot:
    """Start and end point of every trip."""

    name: str
    latitude: float
    longitude: float


def default_depot() -> Depot:
    return Depot(
        name=settings.depot_name,
        latitude=settings.depot_latitude,
        longitude=settings.depot_longitude,
    )


@dataclass(slots=True)
class PlanningConfig:
    strategy: PlanningStrategy = PlanningStrategy.JIT
    tolerance_minutes: int = settings.default_tolerance_minutes
    max_route_duration_hours: float = settings.default_max_route_duration_hours
    depot: Depot = field(default_factory=default_depot)
    custom_instruction: Optional[str] = None
