"""Scripted stand-ins for the route-sequencing model.

``FakeOracle`` answers every sequencing prompt with a plausible plan built from
the batch embedded in the prompt: each delivery arrives at the start of its
window. Queue raw strings or exceptions in ``responses`` to script failures.
"""
import json

from fleetplan.services.timewindows import format_minutes, time_to_minutes

LEG_KM = 10.0


def orders_in_prompt(prompt):
    for line in prompt.splitlines():
        for marker in ("BATCH: ", "SEQUENCE: "):
            if line.startswith(marker):
                return json.loads(line[len(marker):])
    return []


def plan_for(orders, late_minutes=None, lead_minutes=30):
    """Build an oracle route payload visiting ``orders`` in the given order."""
    late_minutes = late_minutes or {}
    stops = []
    for order in orders:
        window_start, window_end = order["window"].split("-")
        duration = order["serviceMinutes"]
        if order["id"] in late_minutes:
            arrival = time_to_minutes(window_end) - duration + late_minutes[order["id"]]
        else:
            arrival = time_to_minutes(window_start)
        stops.append({
            "id": order["id"],
            "arr": format_minutes(arrival),
            "act": "D",
            "dur": duration,
            "km": LEG_KM,
            "lat": 51.85,
            "lng": 5.86,
        })

    arrivals = [time_to_minutes(stop["arr"]) for stop in stops] or [7 * 60 + lead_minutes]
    finished = max(time_to_minutes(stop["arr"]) + stop["dur"] for stop in stops) if stops else arrivals[0]
    stops.append({
        "id": "DEPOT",
        "arr": format_minutes(finished + lead_minutes),
        "act": "R",
        "dur": 0,
        "km": LEG_KM,
        "lat": 51.8157,
        "lng": 5.7663,
    })
    return {
        "start_time": format_minutes(min(arrivals) - lead_minutes),
        "totaal_km": LEG_KM * len(stops),
        "stops": stops,
    }


class FakeOracle:
    def __init__(self, responses=None, late_minutes=None, advice=None):
        self.responses = list(responses or [])
        self.late_minutes = dict(late_minutes or {})
        self.advice = advice if advice is not None else []
        self.calls = []

    def generate(self, prompt, *, response_schema, model=None, temperature=None):
        self.calls.append({"prompt": prompt, "model": model, "temperature": temperature})
        if self.responses:
            item = self.responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        if response_schema.get("type") == "ARRAY":
            return json.dumps(self.advice)
        return json.dumps(plan_for(orders_in_prompt(prompt), self.late_minutes))

    @property
    def batches(self):
        return [[order["id"] for order in orders_in_prompt(call["prompt"])] for call in self.calls]
