"""Request building and strict response parsing around the sequencing oracle."""

from __future__ import annotations

import json
import logging
from typing import Iterable, Sequence

from pydantic import TypeAdapter, ValidationError

from ...config import settings
from ...errors import OracleResponseInvalidError
from ...models.domain import Depot, Order, Vehicle
from ..planning.models import Advice, Trip
from .oracle_client import SequencingOracle
from .prompts import (
    ADVICE_RESPONSE_SCHEMA,
    ROUTE_RESPONSE_SCHEMA,
    build_advice_prompt,
    build_recalculation_prompt,
    build_sequence_prompt,
)
from .schema import OracleAdvice, OracleRoute

logger = logging.getLogger(__name__)

_ADVICE_LIST = TypeAdapter(list[OracleAdvice])


def _load_json(text: str) -> object:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise OracleResponseInvalidError(f"Oracle response is not valid JSON: {e}", text) from e


def parse_route_response(text: str) -> OracleRoute:
    """Validate a raw oracle answer; nothing from an invalid payload is used."""

    payload = _load_json(text)
    if not isinstance(payload, dict):
        raise OracleResponseInvalidError("Oracle response is not a JSON object.", text)
    try:
        return OracleRoute.model_validate(payload)
    except ValidationError as e:
        raise OracleResponseInvalidError(
            f"Oracle response violates the route schema ({e.error_count()} errors).", text
        ) from e


def parse_advice_response(text: str) -> list[Advice]:
    payload = _load_json(text)
    try:
        items = _ADVICE_LIST.validate_python(payload)
    except ValidationError as e:
        raise OracleResponseInvalidError(
            f"Oracle advice violates the advice schema ({e.error_count()} errors).", text
        ) from e
    return [
        Advice(
            debtor_name=item.debtorName,
            current_window=item.currentWindow,
            suggested_window=item.suggestedWindow,
            reason=item.reason,
            potential_saving_eur=item.potentialSavingEur,
            impact_description=item.impactDescription,
        )
        for item in items
    ]


class SequencingAdapter:
    """Narrow seam between the planning loop and the external oracle."""

    def __init__(self, oracle: SequencingOracle) -> None:
        self.oracle = oracle

    def sequence(self, vehicle: Vehicle, batch: Sequence[Order], instruction: str, depot: Depot) -> OracleRoute:
        prompt = build_sequence_prompt(vehicle, depot, batch, instruction)
        logger.debug(f"Sequencing {len(batch)} orders for vehicle {vehicle.vehicle_id}")
        text = self.oracle.generate(
            prompt,
            response_schema=ROUTE_RESPONSE_SCHEMA,
            temperature=settings.oracle_temperature,
        )
        return parse_route_response(text)

    def resequence(
        self, vehicle: Vehicle, sequence: Sequence[Order], instruction: str, depot: Depot
    ) -> OracleRoute:
        prompt = build_recalculation_prompt(vehicle, depot, sequence, instruction)
        text = self.oracle.generate(
            prompt,
            response_schema=ROUTE_RESPONSE_SCHEMA,
            temperature=settings.oracle_temperature,
        )
        return parse_route_response(text)

    def advise(self, trips: Sequence[Trip], unplanned: Iterable[Order] = ()) -> list[Advice]:
        prompt = build_advice_prompt(trips, unplanned)
        text = self.oracle.generate(
            prompt,
            response_schema=ADVICE_RESPONSE_SCHEMA,
            model=settings.oracle_advice_model,
            temperature=settings.oracle_advice_temperature,
        )
        return parse_advice_response(text)
