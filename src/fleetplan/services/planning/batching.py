"""Capacity-aware batch selection for a single vehicle."""

from __future__ import annotations

import re
from typing import Sequence

from ...models.domain import Order, Vehicle

DEFAULT_REGION = "00"

_REGION_PATTERN = re.compile(r"^(\d{2})")


def postcode_region(postcode: str) -> str:
    """First two digits of a postcode (``"6602 AB"`` -> ``"66"``)."""

    match = _REGION_PATTERN.match(postcode.strip()) if postcode else None
    return match.group(1) if match else DEFAULT_REGION


def _first_fitting(
    pool: Sequence[Order],
    vehicle: Vehicle,
    chilled: int,
    frozen: int,
    region: str | None = None,
) -> int:
    for index, candidate in enumerate(pool):
        if not vehicle.can_carry(chilled + candidate.chilled, frozen + candidate.frozen):
            continue
        if region is not None and postcode_region(candidate.postcode) != region:
            continue
        return index
    return -1


def _compartment_full(vehicle: Vehicle, chilled: int, frozen: int) -> bool:
    # Compartments the vehicle does not have never count as full.
    if vehicle.chilled_capacity > 0 and chilled >= vehicle.chilled_capacity:
        return True
    return vehicle.frozen_capacity > 0 and frozen >= vehicle.frozen_capacity


def build_batch(pool: Sequence[Order], vehicle: Vehicle) -> list[Order]:
    """Select a geographically coherent subset of ``pool`` that fits ``vehicle``.

    The pool is expected to be sorted already. The first order that fits the
    vehicle seeds the batch and fixes its postcode region; further orders are
    taken from the same region first and from anywhere otherwise, until nothing
    fits or one of the compartments is full. Orders that are not picked stay
    available for the next vehicle.
    """

    remaining = list(pool)
    seed_index = _first_fitting(remaining, vehicle, 0, 0)
    if seed_index == -1:
        return []

    seed = remaining.pop(seed_index)
    selected = [seed]
    chilled, frozen = seed.chilled, seed.frozen
    region = postcode_region(seed.postcode)

    while remaining:
        index = _first_fitting(remaining, vehicle, chilled, frozen, region)
        if index == -1:
            index = _first_fitting(remaining, vehicle, chilled, frozen)
        if index == -1:
            break
        candidate = remaining.pop(index)
        selected.append(candidate)
        chilled += candidate.chilled
        frozen += candidate.frozen
        if _compartment_full(vehicle, chilled, frozen):
            break

    return selected
