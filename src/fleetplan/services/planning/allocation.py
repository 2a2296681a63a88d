"""Greedy fleet allocation loop."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

from ...errors import (
    OracleConfigError,
    OracleResponseInvalidError,
    OracleUnavailableError,
)
from ...models.domain import Order, PlanningConfig, Vehicle
from ..sequencing.adapter import SequencingAdapter
from .batching import build_batch
from .hydration import filter_late_deliveries, hydrate_trip
from .models import AllocationResult, PlanSummary, Trip

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AllocationState:
    """Working set of one optimization run; every step returns a new state."""

    pool: tuple[Order, ...]
    fleet: tuple[Vehicle, ...]
    trips: tuple[Trip, ...] = ()
    total_cost: float = 0.0
    total_distance: float = 0.0
    total_emission: float = 0.0
    stalled: bool = False

    @classmethod
    def start(cls, orders: Sequence[Order], fleet: Sequence[Vehicle]) -> "AllocationState":
        return cls(
            pool=tuple(orders),
            fleet=tuple(vehicle for vehicle in fleet if vehicle.is_available),
        )

    @property
    def done(self) -> bool:
        return self.stalled or not self.pool or not self.fleet

    def without_vehicle(self, vehicle: Vehicle) -> "AllocationState":
        return replace(self, fleet=tuple(v for v in self.fleet if v.vehicle_id != vehicle.vehicle_id))

    def commit(self, trip: Trip) -> "AllocationState":
        planned = set(trip.order_ids)
        return replace(
            self,
            pool=tuple(order for order in self.pool if order.order_id not in planned),
            trips=(*self.trips, trip),
            total_cost=self.total_cost + trip.total_cost,
            total_distance=self.total_distance + trip.total_distance_km,
            total_emission=self.total_emission + trip.total_co2,
        )


def remaining_demand(pool: Sequence[Order]) -> tuple[int, int]:
    return sum(order.chilled for order in pool), sum(order.frozen for order in pool)


def select_vehicle(fleet: Sequence[Vehicle], pool: Sequence[Order]) -> Optional[Vehicle]:
    """Smallest vehicle that clears the whole pool, else the largest useful one.

    A vehicle is useful when it can hold at least one remaining order on its
    own. ``None`` means no remaining vehicle can take any remaining order.
    """

    if not fleet or not pool:
        return None
    chilled, frozen = remaining_demand(pool)
    ordered = sorted(fleet, key=lambda vehicle: vehicle.total_capacity)

    for vehicle in ordered:
        if vehicle.can_carry(chilled, frozen):
            return vehicle

    for vehicle in reversed(ordered):
        if any(vehicle.can_carry(order.chilled, order.frozen) for order in pool):
            return vehicle
    return None


def allocation_step(
    state: AllocationState,
    adapter: SequencingAdapter,
    config: PlanningConfig,
    instruction: str,
) -> AllocationState:
    """Spend one vehicle on one batch and return the next state."""

    if state.done:
        return state

    vehicle = select_vehicle(state.fleet, state.pool)
    if vehicle is None:
        logger.info(
            f"No remaining vehicle can carry any of the {len(state.pool)} open orders, stopping allocation"
        )
        return replace(state, stalled=True)

    state = state.without_vehicle(vehicle)
    batch = build_batch(state.pool, vehicle)
    if not batch:
        logger.info(f"Vehicle {vehicle.vehicle_id}: no fitting orders, skipped")
        return state

    logger.info(
        f"Vehicle {vehicle.vehicle_id} ({vehicle.vehicle_type.value}): sequencing batch of {len(batch)} orders"
    )
    try:
        route = adapter.sequence(vehicle, batch, instruction, config.depot)
        trip = hydrate_trip(route, vehicle, batch, config)
        trip = filter_late_deliveries(trip, config.tolerance_minutes)
    except OracleConfigError:
        raise
    except OracleUnavailableError as exc:
        if exc.fatal:
            raise
        logger.warning(f"Vehicle {vehicle.vehicle_id}: sequencing service unavailable, batch left open: {exc}")
        return state
    except OracleResponseInvalidError as exc:
        logger.warning(f"Vehicle {vehicle.vehicle_id}: invalid oracle response ({exc}); payload: {exc.excerpt}")
        return state
    except Exception as exc:
        logger.exception(f"Vehicle {vehicle.vehicle_id}: failed to plan batch: {exc}")
        return state

    if trip is None:
        return state

    logger.info(
        f"Vehicle {vehicle.vehicle_id}: committed trip with {len(trip.deliveries)} deliveries, "
        f"{trip.total_distance_km} km, €{trip.total_cost:.2f}"
    )
    return state.commit(trip)


def summarize(state: AllocationState) -> AllocationResult:
    trips = list(state.trips)
    return AllocationResult(
        trips=trips,
        unassigned_orders=list(state.pool),
        summary=PlanSummary(
            total_trips=len(trips),
            total_containers=sum(trip.total_containers for trip in trips),
            total_cost=state.total_cost,
            total_distance=float(round(state.total_distance)),
            total_emission=state.total_emission,
        ),
    )


def allocate(
    orders: Sequence[Order],
    fleet: Sequence[Vehicle],
    adapter: SequencingAdapter,
    config: PlanningConfig,
    instruction: str,
    *,
    call_delay_seconds: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
) -> AllocationResult:
    """Assign ``orders`` (consolidated and sorted) to the available ``fleet``.

    Runs at most one iteration per available vehicle. Failures for one batch
    leave its orders in the pool for the next vehicle.
    """

    state = AllocationState.start(orders, fleet)
    logger.info(f"Allocating {len(state.pool)} orders over {len(state.fleet)} available vehicles")

    first_call = True
    while not state.done:
        if not first_call and call_delay_seconds > 0:
            sleep(call_delay_seconds)
        first_call = False
        state = allocation_step(state, adapter, config, instruction)

    result = summarize(state)
    logger.info(
        f"Allocation finished: {result.summary.total_trips} trips, "
        f"{result.unassigned_count} unassigned orders, €{result.summary.total_cost:.2f}"
    )
    return result
