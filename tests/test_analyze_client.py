"""Analysis client: external service calls and the OpenAI fallback."""
from types import SimpleNamespace

import httpx
import openai
import pytest
from fastapi import HTTPException

from careportal.core.config import settings
from careportal.services import analyze

SERVICE_URL = "http://analysis.local/"


class FakeClient:
    """Stands in for httpx.Client; ``answer`` is (status, text) or an exception."""
    answer = (200, "{}")
    requests: list = []

    def __init__(self, *args, **kwargs):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def post(self, url, **kwargs):
        FakeClient.requests.append((url, kwargs))
        if isinstance(self.answer, Exception):
            raise self.answer
        status_code, text = self.answer
        return httpx.Response(status_code, text=text, request=httpx.Request("POST", url))


@pytest.fixture
def service(monkeypatch):
    monkeypatch.setattr(settings, "analysis_api_url", SERVICE_URL)
    monkeypatch.setattr("careportal.services.analyze.httpx.Client", FakeClient)
    FakeClient.answer = (200, '{"symptoms": ["cough"], "severity": "mild"}')
    FakeClient.requests = []
    return FakeClient


def test_text_goes_to_analyze_endpoint(service):
    result = analyze.analyze_symptoms("dry cough", input_type="voice")
    assert result == {"symptoms": ["cough"], "severity": "mild"}
    url, kwargs = service.requests[0]
    assert url == "http://analysis.local/analyze"
    assert kwargs["json"] == {"text": "dry cough", "input_type": "voice"}


def test_image_goes_to_analyze_image_endpoint(service):
    analyze.analyze_image(b"img", "rash.png", "image/png")
    url, kwargs = service.requests[0]
    assert url == "http://analysis.local/analyze_image"
    assert kwargs["files"] == {"file": ("rash.png", b"img", "image/png")}


@pytest.mark.parametrize(
    "answer,status",
    [
        ((500, "oops"), 502),
        ((200, "not json"), 502),
        ((200, "[1, 2]"), 502),
        (httpx.ReadTimeout("slow"), 503),
        (httpx.ConnectError("refused"), 503),
    ],
)
def test_service_failures(service, answer, status):
    service.answer = answer
    with pytest.raises(HTTPException) as exc:
        analyze.analyze_symptoms("cough")
    assert exc.value.status_code == status


def test_not_configured():
    with pytest.raises(HTTPException) as exc:
        analyze.analyze_symptoms("cough")
    assert exc.value.status_code == 503
    with pytest.raises(HTTPException):
        analyze.analyze_image(b"img", "a.png", "image/png")


def _openai_error(cls, status_code: int):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return cls("denied", response=httpx.Response(status_code, request=request), body=None)


def _fake_openai(outcome, seen: list, key: str):
    def create(**kwargs):
        seen.append((key, kwargs))
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=outcome))])

    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def test_openai_fallback_to_next_key(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_keys", "sk-first,not-a-key,sk-second")
    seen = []
    outcomes = {
        "sk-first": _openai_error(openai.AuthenticationError, 401),
        "sk-second": '{"severity": "urgent", "urgency": true}',
    }
    monkeypatch.setattr(analyze, "_get_client_for_key", lambda key: _fake_openai(outcomes[key], seen, key))
    result = analyze.analyze_symptoms("crushing chest pain")
    assert result == {"severity": "urgent", "urgency": True}
    assert [k for k, _ in seen] == ["sk-first", "sk-second"]
    assert seen[1][1]["response_format"] == {"type": "json_object"}
    assert seen[1][1]["messages"][-1] == {"role": "user", "content": "crushing chest pain"}


def test_openai_rate_limited_everywhere(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-only")
    seen = []
    monkeypatch.setattr(
        analyze,
        "_get_client_for_key",
        lambda key: _fake_openai(_openai_error(openai.RateLimitError, 429), seen, key),
    )
    with pytest.raises(HTTPException) as exc:
        analyze.analyze_symptoms("cough")
    assert exc.value.status_code == 429
    assert len(seen) == 1


def test_openai_invalid_answer(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "sk-only")
    monkeypatch.setattr(analyze, "_get_client_for_key", lambda key: _fake_openai("not json", [], key))
    with pytest.raises(HTTPException) as exc:
        analyze.analyze_symptoms("cough")
    assert exc.value.status_code == 502
