"""Turn a validated oracle sequence into a timed, costed trip."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Mapping, Optional

from ...config import settings
from ...models.domain import Order, PlanningConfig, Vehicle, VehicleType
from ..sequencing.schema import DEPOT_MARKER, OracleRoute
from ..timewindows import MINUTES_PER_DAY, align_window, format_minutes, time_to_minutes
from .models import CostBreakdown, Stop, StopType, Trip

logger = logging.getLogger(__name__)

BREAK_LABEL = "Rest break"
IDLE_LABEL = "Waiting for delivery window"


def trip_fee(vehicle: Vehicle) -> float:
    if vehicle.vehicle_type is VehicleType.TRUCK:
        return settings.trip_fee_truck
    return settings.trip_fee_van


def compute_costs(vehicle: Vehicle, duration_hours: float, distance_km: float) -> CostBreakdown:
    """Personnel, fuel, flat trip fee and depreciation for one trip."""

    personnel = duration_hours * vehicle.hourly_rate
    fuel = (distance_km / 100) * vehicle.consumption_per_100km * vehicle.fuel_price_per_unit
    fixed = trip_fee(vehicle)
    depreciation = (duration_hours / settings.monthly_operating_hours) * (vehicle.monthly_fixed_cost or 0)
    return CostBreakdown(
        personnel=personnel,
        fuel=fuel,
        fixed=fixed,
        depreciation=depreciation,
        personnel_detail=f"{duration_hours:.2f}h x €{vehicle.hourly_rate:g}",
        fuel_detail=f"{distance_km:g}km x €{vehicle.fuel_price_per_unit:g}",
        depreciation_detail=f"Depreciation: €{depreciation:.2f}",
    )


def _index_orders(orders: Mapping[str, Order] | Iterable[Order]) -> Mapping[str, Order]:
    if isinstance(orders, Mapping):
        return orders
    return {order.order_id: order for order in orders}


def _advance(clock: int, arrival_time: str) -> int:
    """Arrival on the trip timeline; an earlier clock time means the next day."""
    arrival = time_to_minutes(arrival_time) + (clock // MINUTES_PER_DAY) * MINUTES_PER_DAY
    if arrival < clock:
        arrival += MINUTES_PER_DAY
    return arrival


def hydrate_trip(
    route: OracleRoute,
    vehicle: Vehicle,
    orders: Mapping[str, Order] | Iterable[Order],
    config: PlanningConfig,
) -> Trip:
    """Build a :class:`Trip` from the oracle's stops.

    Delivery stops must reference an order in ``orders``; unknown or repeated
    ids are dropped. Distance and duration come from the oracle's figures.
    """

    index = _index_orders(orders)
    depot = config.depot
    start_min = time_to_minutes(route.start_time)
    clock = start_min
    current_lat, current_lng = depot.latitude, depot.longitude
    stops: list[Stop] = []
    seen: set[str] = set()

    for raw in route.stops:
        if raw.act == "D":
            if not raw.id or raw.id == DEPOT_MARKER:
                logger.warning(f"Vehicle {vehicle.vehicle_id}: delivery stop without order id dropped")
                continue
            order = index.get(raw.id)
            if order is None:
                logger.warning(f"Vehicle {vehicle.vehicle_id}: unknown order '{raw.id}' in oracle response dropped")
                continue
            if order.order_id in seen:
                logger.warning(f"Vehicle {vehicle.vehicle_id}: repeated delivery of '{raw.id}' dropped")
                continue
            seen.add(order.order_id)

            arrival = clock = _advance(clock, raw.arr)
            window_start, window_end = align_window(
                arrival,
                time_to_minutes(order.time_window_start),
                time_to_minutes(order.time_window_end),
            )
            if raw.lat and raw.lng:
                current_lat, current_lng = raw.lat, raw.lng
            stops.append(
                Stop(
                    stop_type=StopType.DELIVERY,
                    name=order.name,
                    arrival_time=raw.arr,
                    duration_minutes=raw.dur,
                    latitude=raw.lat,
                    longitude=raw.lng,
                    distance_from_prev_km=raw.km,
                    order_id=order.order_id,
                    address=order.address,
                    postcode=order.postcode,
                    city=order.city,
                    time_window=f"{order.time_window_start} - {order.time_window_end}",
                    chilled=order.chilled,
                    frozen=order.frozen,
                    early_minutes=max(0, window_start - arrival),
                    late_minutes=max(0, arrival + raw.dur - window_end),
                )
            )
        elif raw.act == "R":
            clock = _advance(clock, raw.arr)
            stops.append(
                Stop(
                    stop_type=StopType.RETURN,
                    name=f"Return to depot {depot.name}",
                    arrival_time=raw.arr,
                    duration_minutes=raw.dur,
                    latitude=depot.latitude,
                    longitude=depot.longitude,
                    distance_from_prev_km=raw.km,
                )
            )
        else:
            clock = _advance(clock, raw.arr)
            is_idle = raw.act == "I"
            stops.append(
                Stop(
                    stop_type=StopType.IDLE if is_idle else StopType.BREAK,
                    name=raw.msg or (IDLE_LABEL if is_idle else BREAK_LABEL),
                    arrival_time=raw.arr,
                    duration_minutes=raw.dur,
                    latitude=current_lat,
                    longitude=current_lng,
                    distance_from_prev_km=raw.km,
                )
            )

    end_min = clock + stops[-1].duration_minutes if stops else start_min
    duration_min = end_min - start_min

    distance_km = round(route.total_km, 1)
    costs = compute_costs(vehicle, duration_min / 60, distance_km)

    return Trip(
        vehicle_id=vehicle.vehicle_id,
        vehicle_type=vehicle.vehicle_type,
        stops=stops,
        start_time=route.start_time,
        end_time=format_minutes(end_min),
        total_duration_min=duration_min,
        total_distance_km=distance_km,
        costs=costs,
        total_co2=round(distance_km * vehicle.co2_per_km),
    )


def filter_late_deliveries(trip: Trip, tolerance_minutes: int) -> Optional[Trip]:
    """Strip deliveries later than the tolerance; ``None`` if none remain."""

    kept: list[Stop] = []
    for stop in trip.stops:
        if stop.is_delivery and stop.late_minutes > tolerance_minutes:
            logger.warning(
                f"Vehicle {trip.vehicle_id}: order '{stop.order_id}' is {stop.late_minutes} min late "
                f"(tolerance {tolerance_minutes}), removed from trip"
            )
            continue
        kept.append(stop)

    if not any(stop.is_delivery for stop in kept):
        logger.warning(f"Vehicle {trip.vehicle_id}: no deliveries left after tolerance check, trip discarded")
        return None
    return replace(trip, stops=kept)
