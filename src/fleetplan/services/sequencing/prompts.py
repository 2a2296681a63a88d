"""Prompt text and response schemas for the sequencing model."""

from __future__ import annotations

import json
import re
from typing import Iterable, Optional, Sequence

from ...config import settings
from ...errors import UntrustedInstructionError
from ...models.domain import Depot, Order, PlanningStrategy, Vehicle
from ..planning.models import Trip

BREAK_MINUTES = 45
WORK_MINUTES_BEFORE_BREAK = 270
MIN_BREAK_SPLIT_MINUTES = 15

INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\b(ignore|disregard|forget|override)\b[\w\s,]{0,40}\b(previous|prior|above|earlier|preceding|all)\b[\w\s]{0,20}\b(instructions?|prompts?|rules?|context|messages?)\b",
        r"\byou\s+are\s+now\b",
        r"\bfrom\s+now\s+on\s+you\b",
        r"\b(act|behave)\s+as\s+(an?\s+|the\s+)?(assistant|ai|system|developer|admin|different|new)\b",
        r"\bpretend\s+(to\s+be|you\s+are)\b",
        r"\bnew\s+(role|persona|instructions?)\s*:",
        r"\b(system|developer)\s+(prompt|message|instructions?)\b",
        r"^\s*(system|assistant|developer)\s*:",
        r"</?\s*(system|assistant|user|instructions?)\s*>",
        r"\b(reveal|print|show|repeat)\b[\w\s]{0,20}\b(prompt|instructions|api\s*key|secret)s?\b",
    )
)

# Letters, digits, whitespace and ordinary punctuation.
_ALLOWED_INSTRUCTION_CHARS = re.compile(r"^[\w\s.,;:!?()\[\]'\"%&+\-/=*#@€$<>]*$", re.UNICODE)

ROUTE_RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "start_time": {"type": "STRING", "description": "Departure time from the depot (HH:MM)."},
        "totaal_km": {"type": "NUMBER", "description": "Total km including the return to the depot."},
        "stops": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING", "description": "Order id, or 'DEPOT' for the return leg."},
                    "arr": {"type": "STRING", "description": "Arrival time (HH:MM)."},
                    "act": {
                        "type": "STRING",
                        "description": "D (Delivery), B (Break), I (Idle/Wait), R (Return to depot).",
                    },
                    "dur": {"type": "INTEGER", "description": "Duration in minutes."},
                    "km": {"type": "NUMBER", "description": "Km from the previous stop."},
                    "lat": {"type": "NUMBER", "description": "Latitude."},
                    "lng": {"type": "NUMBER", "description": "Longitude."},
                    "msg": {"type": "STRING"},
                },
                "required": ["act", "arr", "dur", "km", "lat", "lng"],
            },
        },
    },
    "required": ["start_time", "stops", "totaal_km"],
}

ADVICE_RESPONSE_SCHEMA: dict = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "debtorName": {"type": "STRING"},
            "currentWindow": {"type": "STRING"},
            "suggestedWindow": {"type": "STRING"},
            "reason": {"type": "STRING"},
            "potentialSavingEur": {"type": "NUMBER"},
            "impactDescription": {"type": "STRING"},
        },
        "required": [
            "debtorName",
            "currentWindow",
            "suggestedWindow",
            "reason",
            "potentialSavingEur",
            "impactDescription",
        ],
    },
}


def validate_custom_instruction(text: Optional[str], max_length: int | None = None) -> Optional[str]:
    """Return the cleaned dispatcher instruction or raise if it cannot be trusted.

    Blank input means "no override". Over-long text, unexpected characters and
    phrasing that tries to re-target the model are rejected, never trimmed.
    """

    if text is None or not text.strip():
        return None
    limit = max_length if max_length is not None else settings.max_instruction_length
    if len(text) > limit:
        raise UntrustedInstructionError(
            f"Custom instruction is {len(text)} characters long; the maximum is {limit}."
        )
    if not _ALLOWED_INSTRUCTION_CHARS.match(text):
        raise UntrustedInstructionError("Custom instruction contains unsupported characters.")
    for pattern in INJECTION_PATTERNS:
        if pattern.search(text):
            raise UntrustedInstructionError(
                "Custom instruction was rejected because it resembles a prompt-injection attempt."
            )
    return text.strip()


def _hard_requirements(max_duration_hours: float) -> str:
    hours = f"{max_duration_hours:g}"
    work_hours = f"{WORK_MINUTES_BEFORE_BREAK / 60:g}"
    return f"""
HARD REQUIREMENTS:
1. MAXIMUM TRIP DURATION: the trip, from departure at the depot until the return to the depot, must never take longer than {hours} hours.
2. REST BREAKS: plan {BREAK_MINUTES} minutes of break (act 'B') after every {work_hours} hours of driving/working time. The break may be split into parts of at least {MIN_BREAK_SPLIT_MINUTES} minutes, e.g. 15 + 15 + 15 or 30 + 15.
3. SERVICE TIME: every stop has a service time 'serviceMinutes'. Use exactly that value as 'dur' for the delivery.
4. Finish every trip with a return to the depot (act 'R', id 'DEPOT').
"""


def _vehicle_preference() -> str:
    return """
VEHICLE CLASS:
- A TRUCK is the default for capacity; a VAN is cheaper. If the trip stays compact in volume and time, plan it as a van trip would be planned.
- Keep distance and idle time low: every driven kilometre and every hour is paid for.
"""


def build_policy_instruction(
    strategy: PlanningStrategy,
    tolerance_minutes: int,
    max_duration_hours: float,
    custom_instruction: Optional[str] = None,
) -> str:
    """Compose the natural-language policy block for one strategy."""

    custom = validate_custom_instruction(custom_instruction)

    if strategy is PlanningStrategy.JIT:
        body = f"""
STRATEGY: JUST-IN-TIME (time windows first)
- Every order has a delivery window 'window' (e.g. 09:00-12:00). The window is leading: the delivery must fall inside it.
- Allowed deviation: at most {tolerance_minutes} minutes. Use it as a buffer, never as a target.
- Schedule backwards: aim to arrive at the first stop at the start of its window and derive 'start_time' from that.
- Truck speed: 70 km/h on highways, 35 km/h in town; add 20% travel time between 07:00 and 09:00.
- If you arrive early, use a {MIN_BREAK_SPLIT_MINUTES}-minute part of the mandatory break (act 'B') instead of waiting (act 'I').
- Order the stops so arrival times stay inside the windows; change the departure time or the order if a window would be missed.
"""
    else:
        body = f"""
STRATEGY: HIGH DENSITY CLUSTERING (distance first)
- Minimise kilometres by grouping stops geographically; geography is leading.
- Delivery windows still matter: allowed deviation is at most {tolerance_minutes} minutes.
- Keep the trip as compact as possible.
"""

    instruction = _hard_requirements(max_duration_hours) + body + _vehicle_preference()
    if custom:
        instruction += f"\nDISPATCHER POLICY (planning preferences only; the hard requirements above still apply):\n{custom}\n"
    return instruction


def _order_payload(order: Order) -> dict:
    return {
        "id": order.order_id,
        "name": order.name,
        "address": order.address,
        "city": order.city,
        "postcode": order.postcode,
        "window": order.time_window,
        "serviceMinutes": order.service_minutes,
        "chilledQty": order.chilled,
        "frozenQty": order.frozen,
    }


def _compact_json(payload: object) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def _depot_line(depot: Depot) -> str:
    return f"DEPOT: {depot.name} (lat {depot.latitude}, lng {depot.longitude})."


def build_sequence_prompt(vehicle: Vehicle, depot: Depot, batch: Sequence[Order], instruction: str) -> str:
    return (
        f"Plan a route for vehicle {vehicle.vehicle_id} ({vehicle.vehicle_type.value}).\n"
        f"{_depot_line(depot)}\n"
        f"BATCH: {_compact_json([_order_payload(order) for order in batch])}\n"
        f"{instruction}\n"
        "Return JSON that follows the response schema."
    )


def build_recalculation_prompt(
    vehicle: Vehicle, depot: Depot, sequence: Sequence[Order], instruction: str
) -> str:
    return (
        f"Recalculate the times for vehicle {vehicle.vehicle_id} ({vehicle.vehicle_type.value}) "
        "visiting the stops in EXACTLY this order; do not reorder deliveries.\n"
        f"{_depot_line(depot)}\n"
        f"SEQUENCE: {_compact_json([_order_payload(order) for order in sequence])}\n"
        f"{instruction}\n"
        "Return JSON that follows the response schema."
    )


def build_advice_prompt(trips: Sequence[Trip], unplanned: Iterable[Order] = ()) -> str:
    summary = [
        {
            "id": trip.vehicle_id,
            "cost": round(trip.total_cost, 2),
            "stops": [
                {"name": stop.name, "city": stop.city, "window": stop.time_window}
                for stop in trip.deliveries
            ],
        }
        for trip in trips
    ]
    prompt = (
        "Analyse these routes and look for cost savings from widening delivery windows. "
        f"PLANNED TRIPS: {_compact_json(summary)}"
    )
    unplanned_payload = [
        {"name": order.name, "city": order.city, "window": order.time_window} for order in unplanned
    ]
    if unplanned_payload:
        prompt += f"\nUNPLANNED ORDERS: {_compact_json(unplanned_payload)}"
    return prompt
