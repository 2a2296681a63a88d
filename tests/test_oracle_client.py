import json

import httpx
import pytest

from fleetplan.config import settings
from fleetplan.errors import OracleConfigError, OracleResponseInvalidError, OracleUnavailableError
from fleetplan.services.sequencing import oracle_client
from fleetplan.services.sequencing.oracle_client import GeminiOracleClient

SCHEMA = {"type": "OBJECT"}


def _envelope(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _client(handler, **kwargs) -> GeminiOracleClient:
    options = {
        "api_key": "test-key",
        "base_url": "https://oracle.test/v1beta/",
        "model": "route-model",
        "max_retries": 2,
        "backoff_seconds": 0,
    }
    options.update(kwargs)
    return GeminiOracleClient(transport=httpx.MockTransport(handler), **options)


def test_missing_api_key_is_a_config_error(monkeypatch):
    monkeypatch.setattr(settings, "oracle_api_key", None)

    with pytest.raises(OracleConfigError):
        GeminiOracleClient()


def test_generate_posts_prompt_and_returns_text():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_envelope('{"ok": true}'))

    text = _client(handler).generate("plan this", response_schema=SCHEMA, temperature=0.3)

    assert text == '{"ok": true}'
    request = seen[0]
    assert request.url.host == "oracle.test"
    assert request.url.path == "/v1beta/models/route-model:generateContent"
    assert request.headers["x-goog-api-key"] == "test-key"
    body = json.loads(request.content)
    assert body["contents"][0]["parts"][0]["text"] == "plan this"
    assert body["generationConfig"]["responseMimeType"] == "application/json"
    assert body["generationConfig"]["responseSchema"] == SCHEMA
    assert body["generationConfig"]["temperature"] == 0.3


def test_model_override_changes_endpoint():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_envelope("[]"))

    _client(handler).generate("advise", response_schema=SCHEMA, model="advice-model")

    assert seen[0].url.path.endswith("/models/advice-model:generateContent")


def test_generated_text_parts_are_joined():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"candidates": [{"content": {"parts": [{"text": '{"a":'}, {"text": " 1}"}]}}]}
        )

    assert _client(handler).generate("x", response_schema=SCHEMA) == '{"a": 1}'


@pytest.mark.parametrize("status_code", [401, 403])
def test_rejected_credentials_are_fatal(status_code):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(status_code, json={"error": "denied"})

    with pytest.raises(OracleUnavailableError) as excinfo:
        _client(handler).generate("x", response_schema=SCHEMA)

    assert excinfo.value.fatal
    assert len(calls) == 1


def test_server_errors_are_retried_until_success():
    responses = [httpx.Response(503), httpx.Response(429), httpx.Response(200, json=_envelope("{}"))]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    assert _client(handler).generate("x", response_schema=SCHEMA) == "{}"
    assert responses == []


def test_exhausted_retries_raise_recoverable_error():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    with pytest.raises(OracleUnavailableError) as excinfo:
        _client(handler).generate("x", response_schema=SCHEMA)

    assert not excinfo.value.fatal
    assert len(calls) == 3


def test_client_errors_are_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"error": "bad request"})

    with pytest.raises(OracleUnavailableError):
        _client(handler).generate("x", response_schema=SCHEMA)

    assert len(calls) == 1


@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("read timed out"),
        httpx.RemoteProtocolError("peer closed connection"),
        httpx.ProxyError("proxy refused"),
    ],
)
def test_transport_failures_are_retried_then_raised(error):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise error

    with pytest.raises(OracleUnavailableError) as excinfo:
        _client(handler, max_retries=1).generate("x", response_schema=SCHEMA)

    assert not excinfo.value.fatal
    assert isinstance(excinfo.value, ConnectionError)
    assert len(calls) == 2


@pytest.mark.parametrize(
    "payload",
    [
        {"candidates": []},
        {"promptFeedback": {"blockReason": "SAFETY"}},
        _envelope("   "),
        {"candidates": [{"content": "not-an-object"}]},
        {"candidates": ["text"]},
        {"candidates": [{"content": {"parts": "plain"}}]},
        {"candidates": {"content": {}}},
        ["not", "an", "object"],
    ],
)
def test_empty_answers_are_invalid(payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    with pytest.raises(OracleResponseInvalidError):
        _client(handler).generate("x", response_schema=SCHEMA)


def test_non_json_envelope_is_invalid():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(OracleResponseInvalidError) as excinfo:
        _client(handler).generate("x", response_schema=SCHEMA)

    assert "gateway" in excinfo.value.excerpt


def test_check_health_reports_configured_key(monkeypatch):
    monkeypatch.setattr(settings, "oracle_api_key", None)
    assert oracle_client.check_health() is False

    monkeypatch.setattr(settings, "oracle_api_key", "secret")
    assert oracle_client.check_health() is True
