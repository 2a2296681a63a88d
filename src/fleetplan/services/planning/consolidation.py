"""Merge orders that share a drop location and time window."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Sequence

from ...models.domain import Order, PlanningStrategy
from ..timewindows import time_to_minutes

logger = logging.getLogger(__name__)


def consolidation_key(order: Order) -> tuple[str, str, str, str, str]:
    return (
        order.address.strip().lower(),
        order.postcode.strip().lower(),
        order.city.strip().lower(),
        order.time_window_start,
        order.time_window_end,
    )


def consolidate_orders(orders: Iterable[Order]) -> list[Order]:
    """Return one aggregated order per (address, postcode, city, window).

    Orders without any load are left out. Loads are summed, the service time
    is the longest of the group and names are joined with ``" + "``. Groups
    keep the position of their first member.
    """

    merged: dict[tuple[str, str, str, str, str], Order] = {}
    skipped = 0
    for order in orders:
        if order.total_load <= 0:
            skipped += 1
            continue
        key = consolidation_key(order)
        existing = merged.get(key)
        if existing is None:
            merged[key] = replace(order)
            continue
        existing.chilled += order.chilled
        existing.frozen += order.frozen
        existing.service_minutes = max(existing.service_minutes, order.service_minutes)
        existing.name = f"{existing.name} + {order.name}"

    if skipped:
        logger.info(f"Skipped {skipped} orders without chilled or frozen load")
    return list(merged.values())


def sort_for_strategy(orders: Sequence[Order], strategy: PlanningStrategy) -> list[Order]:
    if strategy is PlanningStrategy.JIT:
        return sorted(orders, key=lambda order: (time_to_minutes(order.time_window_start), order.postcode))
    return sorted(orders, key=lambda order: order.postcode)
