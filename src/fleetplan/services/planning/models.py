"""Planning result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...models.domain import Order, VehicleType


class StopType(str, Enum):
    DELIVERY = "DELIVERY"
    BREAK = "BREAK"
    IDLE = "IDLE"
    RETURN = "RETURN"


@dataclass(slots=True)
class Stop:
    stop_type: StopType
    name: str
    arrival_time: str
    duration_minutes: int
    latitude: float
    longitude: float
    distance_from_prev_km: float
    order_id: Optional[str] = None
    address: Optional[str] = None
    postcode: Optional[str] = None
    city: Optional[str] = None
    time_window: Optional[str] = None
    chilled: int = 0
    frozen: int = 0
    early_minutes: int = 0
    late_minutes: int = 0

    @property
    def is_delivery(self) -> bool:
        return self.stop_type is StopType.DELIVERY

    @property
    def containers(self) -> int:
        return self.chilled + self.frozen


@dataclass(slots=True)
class CostBreakdown:
    personnel: float
    fuel: float
    fixed: float
    depreciation: float
    personnel_detail: str = ""
    fuel_detail: str = ""
    depreciation_detail: str = ""

    @property
    def total(self) -> float:
        return self.personnel + self.fuel + self.fixed + self.depreciation


@dataclass(slots=True)
class Trip:
    vehicle_id: str
    vehicle_type: VehicleType
    stops: List[Stop]
    start_time: str
    end_time: str
    total_duration_min: int
    total_distance_km: float
    costs: CostBreakdown
    total_co2: float

    @property
    def duration_hours(self) -> float:
        return self.total_duration_min / 60

    @property
    def total_cost(self) -> float:
        return self.costs.total

    @property
    def deliveries(self) -> list[Stop]:
        return [stop for stop in self.stops if stop.is_delivery]

    @property
    def order_ids(self) -> list[str]:
        return [stop.order_id for stop in self.deliveries if stop.order_id]

    @property
    def total_chilled(self) -> int:
        return sum(stop.chilled for stop in self.deliveries)

    @property
    def total_frozen(self) -> int:
        return sum(stop.frozen for stop in self.deliveries)

    @property
    def total_containers(self) -> int:
        return self.total_chilled + self.total_frozen

    @property
    def total_pause_minutes(self) -> int:
        return sum(stop.duration_minutes for stop in self.stops if stop.stop_type is StopType.BREAK)


@dataclass(slots=True)
class PlanSummary:
    total_trips: int = 0
    total_containers: int = 0
    total_cost: float = 0.0
    total_distance: float = 0.0
    total_emission: float = 0.0


@dataclass(slots=True)
class AllocationResult:
    trips: List[Trip]
    unassigned_orders: List[Order]
    summary: PlanSummary = field(default_factory=PlanSummary)

    @property
    def unassigned_count(self) -> int:
        return len(self.unassigned_orders)


@dataclass(slots=True)
class Advice:
    debtor_name: str
    current_window: str
    suggested_window: str
    reason: str
    potential_saving_eur: float
    impact_description: str
