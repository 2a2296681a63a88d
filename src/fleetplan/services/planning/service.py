"""Planning operations exposed to the application layer."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional, Sequence

from ...config import settings
from ...errors import (
    OracleConfigError,
    OracleResponseInvalidError,
    OracleUnavailableError,
    RateLimitExceededError,
)
from ...models.domain import Order, PlanningConfig, Vehicle
from ..ratelimit import rate_limiter
from ..sequencing.adapter import SequencingAdapter
from ..sequencing.oracle_client import GeminiOracleClient
from ..sequencing.prompts import build_policy_instruction
from .allocation import allocate
from .consolidation import consolidate_orders, sort_for_strategy
from .hydration import hydrate_trip
from .models import Advice, AllocationResult, Trip

logger = logging.getLogger(__name__)


def _enforce_rate_limit(caller_id: Optional[str]) -> None:
    result = rate_limiter.check_limit(caller_id)
    if not result.allowed:
        raise RateLimitExceededError(caller_id or "", result.reset_in_ms)


def _check_unique_ids(orders: Sequence[Order]) -> None:
    # Trips reference orders by id, so two pool entries must never share one.
    counts = Counter(order.order_id for order in orders)
    duplicates = sorted(order_id for order_id, count in counts.items() if count > 1)
    if duplicates:
        raise ValueError(
            f"Order ids must be unique per drop and time window; repeated: {', '.join(duplicates)}"
        )


def _policy_instruction(config: PlanningConfig) -> str:
    return build_policy_instruction(
        config.strategy,
        config.tolerance_minutes,
        config.max_route_duration_hours,
        config.custom_instruction,
    )


def optimize(
    orders: Sequence[Order],
    fleet: Sequence[Vehicle],
    config: PlanningConfig | None = None,
    caller_id: Optional[str] = None,
) -> AllocationResult:
    """Consolidate ``orders`` and distribute them over ``fleet``.

    Raises for an untrusted policy override, an id shared by orders that do
    not consolidate, an exhausted rate limit or a missing oracle credential.
    Failures of single batches are absorbed and show up as unassigned orders.
    """

    config = config or PlanningConfig()
    instruction = _policy_instruction(config)
    consolidated = consolidate_orders(list(orders))
    _check_unique_ids(consolidated)
    _enforce_rate_limit(caller_id)

    pool = sort_for_strategy(consolidated, config.strategy)
    logger.info(
        f"Optimizing {len(pool)} consolidated orders (from {len(orders)}) with strategy {config.strategy.value}"
    )
    if not pool:
        return AllocationResult(trips=[], unassigned_orders=[])

    adapter = SequencingAdapter(GeminiOracleClient())
    return allocate(
        pool,
        list(fleet),
        adapter,
        config,
        instruction,
        call_delay_seconds=settings.oracle_call_delay_seconds,
    )


def recalculate_single_trip(
    vehicle: Vehicle,
    stop_order: Sequence[str],
    config: PlanningConfig | None,
    orders: Sequence[Order],
    caller_id: Optional[str] = None,
) -> Trip:
    """Re-time an existing trip for ``vehicle`` in the given delivery order."""

    config = config or PlanningConfig()
    instruction = _policy_instruction(config)

    index = {order.order_id: order for order in orders}
    sequence: list[Order] = []
    seen: set[str] = set()
    for order_id in stop_order:
        order = index.get(order_id)
        if order is None:
            logger.warning(f"Order {order_id} not found, skipping in recalculation")
            continue
        if order.order_id in seen:
            continue
        seen.add(order.order_id)
        sequence.append(order)
    if not sequence:
        raise ValueError("None of the requested stops reference a known order.")

    _enforce_rate_limit(caller_id)
    adapter = SequencingAdapter(GeminiOracleClient())
    route = adapter.resequence(vehicle, sequence, instruction, config.depot)
    return hydrate_trip(route, vehicle, sequence, config)


def generate_savings_advice(
    trips: Sequence[Trip],
    orders: Sequence[Order],
    caller_id: Optional[str] = None,
) -> list[Advice]:
    """Ask for time-window changes that would lower cost. Never raises."""

    if not trips:
        return []

    planned = {order_id for trip in trips for order_id in trip.order_ids}
    unplanned = [order for order in orders if order.order_id not in planned]
    try:
        _enforce_rate_limit(caller_id)
        adapter = SequencingAdapter(GeminiOracleClient())
        return adapter.advise(trips, unplanned)
    except RateLimitExceededError as exc:
        logger.info(f"Savings advice skipped: {exc}")
    except (OracleConfigError, OracleUnavailableError) as exc:
        logger.warning(f"Savings advice unavailable: {exc}")
    except OracleResponseInvalidError as exc:
        logger.warning(f"Savings advice response rejected ({exc}); payload: {exc.excerpt}")
    except Exception as exc:
        logger.exception(f"Savings advice failed: {exc}")
    return []

