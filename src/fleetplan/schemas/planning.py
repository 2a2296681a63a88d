"""Planning request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..config import settings
from ..models.domain import Depot, Order, PlanningConfig, PlanningStrategy, Vehicle, VehicleType
from ..services.planning.models import (
    Advice,
    AllocationResult,
    CostBreakdown,
    Stop,
    StopType,
    Trip,
)
from ..services.timewindows import is_clock_time


def _clock(value: str) -> str:
    if not is_clock_time(value):
        raise ValueError(f"expected HH:MM, got {value!r}")
    return value.strip()


class OrderModel(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    address: str
    postcode: str
    city: str
    time_window_start: str
    time_window_end: str
    drop_time_minutes: int = Field(default=settings.default_service_minutes, ge=0)
    containers_chilled: int = Field(default=0, ge=0)
    containers_frozen: int = Field(default=0, ge=0)
    debtor_number: Optional[str] = None
    fixed_route_id: Optional[str] = None

    @field_validator("time_window_start", "time_window_end")
    @classmethod
    def _check_window(cls, value: str) -> str:
        return _clock(value)

    def to_domain(self) -> Order:
        return Order(
            order_id=self.id,
            name=self.name,
            address=self.address,
            postcode=self.postcode,
            city=self.city,
            time_window_start=self.time_window_start,
            time_window_end=self.time_window_end,
            service_minutes=self.drop_time_minutes,
            chilled=self.containers_chilled,
            frozen=self.containers_frozen,
            debtor_number=self.debtor_number,
            fixed_route_id=self.fixed_route_id,
        )


class CapacityModel(BaseModel):
    chilled: int = Field(..., ge=0)
    frozen: int = Field(..., ge=0)


class VehicleModel(BaseModel):
    id: str = Field(..., min_length=1)
    type: VehicleType
    capacity: CapacityModel
    hourly_rate: float = Field(..., ge=0)
    consumption_per_100km: float = Field(..., ge=0)
    fuel_price_per_unit: float = Field(..., ge=0)
    monthly_fixed_cost: float = Field(default=0.0, ge=0)
    co2_emission_per_km: float = Field(default=0.0, ge=0)
    is_available: bool = True
    license_plate: Optional[str] = None
    brand: Optional[str] = None
    fuel_type: Optional[str] = None
    max_range_km: Optional[float] = Field(default=None, ge=0)

    def to_domain(self) -> Vehicle:
        return Vehicle(
            vehicle_id=self.id,
            vehicle_type=self.type,
            chilled_capacity=self.capacity.chilled,
            frozen_capacity=self.capacity.frozen,
            hourly_rate=self.hourly_rate,
            consumption_per_100km=self.consumption_per_100km,
            fuel_price_per_unit=self.fuel_price_per_unit,
            monthly_fixed_cost=self.monthly_fixed_cost,
            co2_per_km=self.co2_emission_per_km,
            is_available=self.is_available,
            license_plate=self.license_plate,
            brand=self.brand,
            fuel_type=self.fuel_type,
            max_range_km=self.max_range_km,
        )


class DepotModel(BaseModel):
    name: str = settings.depot_name
    latitude: float = Field(default=settings.depot_latitude, ge=-90, le=90)
    longitude: float = Field(default=settings.depot_longitude, ge=-180, le=180)


class PlanningConfigModel(BaseModel):
    strategy: PlanningStrategy = PlanningStrategy.JIT
    time_window_tolerance_minutes: Optional[int] = Field(None, ge=0)
    max_route_duration_hours: Optional[float] = Field(None, gt=0)
    depot: Optional[DepotModel] = None
    custom_instruction: Optional[str] = Field(
        default=None,
        description="Free-text planning preferences appended to the policy block.",
    )

    def to_domain(self) -> PlanningConfig:
        base = PlanningConfig()
        return PlanningConfig(
            strategy=self.strategy,
            tolerance_minutes=self.time_window_tolerance_minutes
            if self.time_window_tolerance_minutes is not None
            else base.tolerance_minutes,
            max_route_duration_hours=self.max_route_duration_hours
            if self.max_route_duration_hours is not None
            else base.max_route_duration_hours,
            depot=Depot(**self.depot.model_dump()) if self.depot else base.depot,
            custom_instruction=self.custom_instruction,
        )


class StopModel(BaseModel):
    type: StopType
    name: str
    arrival_time: str
    duration_minutes: int = Field(..., ge=0)
    lat: float
    lng: float
    distance_from_previous_stop: float = Field(default=0.0, ge=0)
    order_id: Optional[str] = None
    address: Optional[str] = None
    postcode: Optional[str] = None
    city: Optional[str] = None
    time_window: Optional[str] = None
    containers_chilled: int = 0
    containers_frozen: int = 0
    early_minutes: int = 0
    late_minutes: int = 0

    @classmethod
    def from_stop(cls, stop: Stop) -> "StopModel":
        return cls(
            type=stop.stop_type,
            name=stop.name,
            arrival_time=stop.arrival_time,
            duration_minutes=stop.duration_minutes,
            lat=stop.latitude,
            lng=stop.longitude,
            distance_from_previous_stop=stop.distance_from_prev_km,
            order_id=stop.order_id,
            address=stop.address,
            postcode=stop.postcode,
            city=stop.city,
            time_window=stop.time_window,
            containers_chilled=stop.chilled,
            containers_frozen=stop.frozen,
            early_minutes=stop.early_minutes,
            late_minutes=stop.late_minutes,
        )

    def to_stop(self) -> Stop:
        return Stop(
            stop_type=self.type,
            name=self.name,
            arrival_time=self.arrival_time,
            duration_minutes=self.duration_minutes,
            latitude=self.lat,
            longitude=self.lng,
            distance_from_prev_km=self.distance_from_previous_stop,
            order_id=self.order_id,
            address=self.address,
            postcode=self.postcode,
            city=self.city,
            time_window=self.time_window,
            chilled=self.containers_chilled,
            frozen=self.containers_frozen,
            early_minutes=self.early_minutes,
            late_minutes=self.late_minutes,
        )


class CostBreakdownModel(BaseModel):
    personnel: float
    personnel_detail: str = ""
    fuel: float
    fuel_detail: str = ""
    fixed: float
    depreciation: float
    depreciation_detail: str = ""


class TripModel(BaseModel):
    vehicle_id: str
    vehicle_type: VehicleType
    stops: List[StopModel]
    start_time: str
    end_time: str
    estimated_duration_hours: float = 0.0
    total_duration_minutes: int = Field(..., ge=0)
    total_distance_km: float = Field(..., ge=0)
    total_cost: float = 0.0
    cost_breakdown: CostBreakdownModel
    total_co2_emission: float = 0.0
    total_containers: int = 0
    total_containers_chilled: int = 0
    total_containers_frozen: int = 0
    total_pause_minutes: int = 0

    @classmethod
    def from_trip(cls, trip: Trip) -> "TripModel":
        return cls(
            vehicle_id=trip.vehicle_id,
            vehicle_type=trip.vehicle_type,
            stops=[StopModel.from_stop(stop) for stop in trip.stops],
            start_time=trip.start_time,
            end_time=trip.end_time,
            estimated_duration_hours=trip.duration_hours,
            total_duration_minutes=trip.total_duration_min,
            total_distance_km=trip.total_distance_km,
            total_cost=trip.total_cost,
            cost_breakdown=CostBreakdownModel(
                personnel=trip.costs.personnel,
                personnel_detail=trip.costs.personnel_detail,
                fuel=trip.costs.fuel,
                fuel_detail=trip.costs.fuel_detail,
                fixed=trip.costs.fixed,
                depreciation=trip.costs.depreciation,
                depreciation_detail=trip.costs.depreciation_detail,
            ),
            total_co2_emission=trip.total_co2,
            total_containers=trip.total_containers,
            total_containers_chilled=trip.total_chilled,
            total_containers_frozen=trip.total_frozen,
            total_pause_minutes=trip.total_pause_minutes,
        )

    def to_trip(self) -> Trip:
        return Trip(
            vehicle_id=self.vehicle_id,
            vehicle_type=self.vehicle_type,
            stops=[stop.to_stop() for stop in self.stops],
            start_time=self.start_time,
            end_time=self.end_time,
            total_duration_min=self.total_duration_minutes,
            total_distance_km=self.total_distance_km,
            costs=CostBreakdown(
                personnel=self.cost_breakdown.personnel,
                fuel=self.cost_breakdown.fuel,
                fixed=self.cost_breakdown.fixed,
                depreciation=self.cost_breakdown.depreciation,
                personnel_detail=self.cost_breakdown.personnel_detail,
                fuel_detail=self.cost_breakdown.fuel_detail,
                depreciation_detail=self.cost_breakdown.depreciation_detail,
            ),
            total_co2=self.total_co2_emission,
        )


class PlanSummaryModel(BaseModel):
    total_trips: int
    total_containers: int
    total_cost: float
    total_distance: float
    total_emission: float


class OptimizeRequest(BaseModel):
    orders: List[OrderModel]
    fleet: List[VehicleModel]
    config: Optional[PlanningConfigModel] = None
    caller_id: Optional[str] = Field(default=None, description="Identity used for rate limiting.")

    @model_validator(mode="after")
    def _check_unique_order_ids(self) -> "OptimizeRequest":
        seen: set[str] = set()
        duplicates: list[str] = []
        for order in self.orders:
            if order.id in seen and order.id not in duplicates:
                duplicates.append(order.id)
            seen.add(order.id)
        if duplicates:
            raise ValueError(f"Duplicate order ids: {', '.join(duplicates)}")
        return self


class OptimizeResponse(BaseModel):
    trips: List[TripModel]
    unassigned_count: int
    unassigned_order_ids: List[str]
    summary: PlanSummaryModel

    @classmethod
    def from_result(cls, result: AllocationResult) -> "OptimizeResponse":
        summary = result.summary
        return cls(
            trips=[TripModel.from_trip(trip) for trip in result.trips],
            unassigned_count=result.unassigned_count,
            unassigned_order_ids=[order.order_id for order in result.unassigned_orders],
            summary=PlanSummaryModel(
                total_trips=summary.total_trips,
                total_containers=summary.total_containers,
                total_cost=summary.total_cost,
                total_distance=summary.total_distance,
                total_emission=summary.total_emission,
            ),
        )


class RecalculateRequest(BaseModel):
    vehicle: VehicleModel
    stop_order: List[str] = Field(..., min_length=1, description="Order ids in the desired visiting order.")
    orders: List[OrderModel]
    config: Optional[PlanningConfigModel] = None
    caller_id: Optional[str] = None


class AdviceRequest(BaseModel):
    trips: List[TripModel]
    orders: List[OrderModel] = Field(default_factory=list)
    caller_id: Optional[str] = None


class AdviceModel(BaseModel):
    debtor_name: str
    current_window: str
    suggested_window: str
    reason: str
    potential_saving_eur: float
    impact_description: str

    @classmethod
    def from_advice(cls, advice: Advice) -> "AdviceModel":
        return cls(
            debtor_name=advice.debtor_name,
            current_window=advice.current_window,
            suggested_window=advice.suggested_window,
            reason=advice.reason,
            potential_saving_eur=advice.potential_saving_eur,
            impact_description=advice.impact_description,
        )
