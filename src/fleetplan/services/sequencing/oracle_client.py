"""HTTP client for the generative route-sequencing model."""

from __future__ import annotations

import logging
import time
from typing import Protocol

import httpx

from ...config import settings
from ...errors import OracleConfigError, OracleResponseInvalidError, OracleUnavailableError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
AUTH_STATUS_CODES = frozenset({401, 403})


class SequencingOracle(Protocol):
    """Anything that turns a prompt into a JSON document matching a schema."""

    def generate(
        self,
        prompt: str,
        *,
        response_schema: dict,
        model: str | None = None,
        temperature: float | None = None,
    ) -> str:
        ...


class GeminiOracleClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.oracle_api_key
        if not self.api_key:
            raise OracleConfigError("Route-sequencing API key is not configured (FLEETPLAN_ORACLE_API_KEY).")
        self.base_url = (base_url or settings.oracle_base_url).rstrip("/")
        self.model = model or settings.oracle_model
        self.timeout = timeout if timeout is not None else settings.oracle_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.oracle_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.oracle_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        )

    def _build_body(self, prompt: str, response_schema: dict, temperature: float) -> dict:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            },
        }

    def generate(
        self,
        prompt: str,
        *,
        response_schema: dict,
        model: str | None = None,
        temperature: float | None = None,
    ) -> str:
        model_name = model or self.model
        url = f"{self.base_url}/models/{model_name}:generateContent"
        body = self._build_body(
            prompt,
            response_schema,
            temperature if temperature is not None else settings.oracle_temperature,
        )
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.post(url, json=body, headers=headers)
                    response.raise_for_status()
                    return _extract_text(response)
                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    if status_code in AUTH_STATUS_CODES:
                        raise OracleUnavailableError(
                            f"Route-sequencing service rejected the credentials (HTTP {status_code}).",
                            fatal=True,
                        ) from e
                    attempt += 1
                    if status_code not in RETRYABLE_STATUS_CODES or attempt > self.max_retries:
                        raise OracleUnavailableError(
                            f"Route-sequencing request failed with HTTP {status_code}."
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Oracle HTTP {status_code}, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except httpx.TransportError as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Oracle request failed after {self.max_retries} retries: {e}")
                        raise OracleUnavailableError(
                            f"Route-sequencing service at {self.base_url} is not reachable: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Oracle network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
        finally:
            client.close()


def _extract_text(response: httpx.Response) -> str:
    """Pull the generated JSON text out of a generateContent response."""

    try:
        data = response.json()
    except ValueError as e:
        raise OracleResponseInvalidError("Oracle envelope is not JSON.", response.text) from e

    candidates = data.get("candidates") if isinstance(data, dict) else None
    if not candidates or not isinstance(candidates, list):
        raise OracleResponseInvalidError("Oracle response contains no candidates.", response.text)
    first = candidates[0]
    content = first.get("content") if isinstance(first, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise OracleResponseInvalidError("Oracle candidate has no content parts.", response.text)
    text = "".join(
        part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)
    )
    if not text.strip():
        raise OracleResponseInvalidError("Oracle response contains no text.", response.text)
    return text


def check_health() -> bool:
    """True when an oracle credential is configured."""
    return bool(settings.oracle_api_key)
