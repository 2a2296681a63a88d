"""Client, prompts and response parsing for the route-sequencing model."""

from .adapter import SequencingAdapter, parse_advice_response, parse_route_response
from .oracle_client import GeminiOracleClient, SequencingOracle

__all__ = [
    "SequencingAdapter",
    "SequencingOracle",
    "GeminiOracleClient",
    "parse_route_response",
    "parse_advice_response",
]
