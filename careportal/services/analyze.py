"""
Symptom analysis client.

The analysis itself runs in an external service (ANALYSIS_API_URL). When no
service URL is configured but OpenAI keys are, the same response shape is
produced with an OpenAI chat completion in JSON mode. Either way callers get a
raw dict with symptoms, diseases, severity and recommendations; failures are
raised as HTTPException (503 unavailable, 429 busy, 502 bad upstream answer).
"""
import base64
import json
import logging

import httpx
from fastapi import HTTPException
from openai import APIConnectionError, APIError, AuthenticationError, OpenAI, RateLimitError

from careportal.core.config import get_openai_keys, is_openai_configured, settings

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 8.0
# On these errors the next key is tried
OPENAI_FALLBACK_EXCEPTIONS = (AuthenticationError, RateLimitError)

_openai_clients: dict[str, OpenAI] = {}

ANALYSIS_PROMPT = """You are a symptom triage assistant. Read the patient's description and answer with ONE JSON object:
{
  "symptoms": ["short symptom names"],
  "symptoms_with_confidence": [{"symptom": "name", "confidence": 0.0-1.0, "source": "model"}],
  "diseases": [{"name": "condition", "confidence": 0.0-1.0, "description": "one sentence"}],
  "severity": "mild" | "moderate" | "urgent" | "emergency",
  "urgency": true | false,
  "recommendations": ["short actionable lines; say 'see a doctor' when professional care is needed"],
  "follow_up_questions": ["questions a clinician would ask next"],
  "body_parts": ["affected body parts"],
  "confidence": 0.0-1.0
}
Never invent a diagnosis with high confidence. Answer with JSON only."""

IMAGE_PROMPT = """The image shows a visible skin condition. Describe what you see as ONE JSON object:
{
  "diseases": [{"name": "condition", "confidence": 0.0-1.0, "description": "one sentence"}],
  "severity": "mild" | "moderate" | "urgent" | "emergency",
  "urgency": true | false,
  "care_tips": ["short actionable lines; say 'consult a dermatologist' when needed"],
  "body_part": "skin",
  "confidence": 0.0-1.0
}
If no skin condition is visible, return an empty diseases list with severity "mild". Answer with JSON only."""


def _get_client_for_key(key: str) -> OpenAI:
    if key not in _openai_clients:
        _openai_clients[key] = OpenAI(api_key=key, timeout=settings.analysis_api_timeout, max_retries=0)
    return _openai_clients[key]


def _openai_create_with_fallback(create_fn):
    """
    Calls create_fn(client); on AuthenticationError or RateLimitError moves on
    to the next configured key. Re-raises the last error when every key failed.
    """
    keys = get_openai_keys()
    if not keys:
        raise HTTPException(status_code=503, detail="Symptom analysis is not configured.")
    last_exc: Exception | None = None
    for key in keys:
        try:
            return create_fn(_get_client_for_key(key))
        except OPENAI_FALLBACK_EXCEPTIONS as e:
            last_exc = e
            logger.warning("OpenAI key skipped (%s), trying next: %s", key[:12] + "...", e)
    raise last_exc


def _raise_openai_http_error(exc: Exception) -> None:
    """OpenAI errors -> HTTP errors. A bad key is a 503 so it is not confused with the user's session."""
    if isinstance(exc, HTTPException):
        raise exc
    if isinstance(exc, AuthenticationError):
        raise HTTPException(status_code=503, detail="Symptom analysis is unavailable right now.") from exc
    if isinstance(exc, RateLimitError):
        raise HTTPException(status_code=429, detail="Symptom analysis is busy. Please try again shortly.") from exc
    if isinstance(exc, APIConnectionError):
        raise HTTPException(status_code=503, detail="Symptom analysis is unreachable. Please try again.") from exc
    if isinstance(exc, APIError):
        raise HTTPException(status_code=502, detail="Symptom analysis returned an error.") from exc
    raise HTTPException(status_code=502, detail="Symptom analysis returned an invalid answer.") from exc


def _parse_json_content(content: str | None) -> dict:
    data = json.loads(content or "{}")
    if not isinstance(data, dict):
        raise ValueError("analysis answer is not a JSON object")
    return data


def _openai_analyze(messages: list[dict]) -> dict:
    def _create(client: OpenAI):
        return client.chat.completions.create(
            model=settings.openai_model,
            messages=messages,
            response_format={"type": "json_object"},
        )

    try:
        response = _openai_create_with_fallback(_create)
        return _parse_json_content(response.choices[0].message.content)
    except (AuthenticationError, RateLimitError, APIConnectionError, APIError) as e:
        logger.exception("OpenAI API error during symptom analysis: %s", e)
        _raise_openai_http_error(e)
    except ValueError as e:
        logger.exception("OpenAI answer could not be parsed: %s", e)
        _raise_openai_http_error(e)


def _service_url(path: str) -> str:
    return settings.analysis_api_url.rstrip("/") + path


def _post_to_service(path: str, **kwargs) -> dict:
    timeout = httpx.Timeout(settings.analysis_api_timeout, connect=CONNECT_TIMEOUT)
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.post(_service_url(path), **kwargs)
        response.raise_for_status()
        return _parse_json_content(response.text)
    except httpx.TimeoutException as e:
        logger.warning("Analysis service timed out on %s: %s", path, e)
        raise HTTPException(status_code=503, detail="Symptom analysis timed out. Please try again.") from e
    except httpx.HTTPStatusError as e:
        logger.warning("Analysis service answered %s on %s", e.response.status_code, path)
        raise HTTPException(status_code=502, detail="Symptom analysis returned an error.") from e
    except httpx.HTTPError as e:
        logger.warning("Analysis service unreachable on %s: %s", path, e)
        raise HTTPException(status_code=503, detail="Symptom analysis is unreachable. Please try again.") from e
    except ValueError as e:
        logger.warning("Analysis service sent an invalid body on %s: %s", path, e)
        raise HTTPException(status_code=502, detail="Symptom analysis returned an invalid answer.") from e


def analyze_symptoms(text: str, input_type: str = "text") -> dict:
    """Analyze a typed or spoken symptom description. ``input_type`` is "text" or "voice"."""
    if settings.analysis_api_url:
        return _post_to_service("/analyze", json={"text": text, "input_type": input_type})
    if is_openai_configured():
        return _openai_analyze([
            {"role": "system", "content": ANALYSIS_PROMPT},
            {"role": "user", "content": text},
        ])
    raise HTTPException(status_code=503, detail="Symptom analysis is not configured.")


def analyze_image(image_bytes: bytes, filename: str, mime_type: str) -> dict:
    """Analyze a photo of a visible condition (skin)."""
    if settings.analysis_api_url:
        return _post_to_service("/analyze_image", files={"file": (filename, image_bytes, mime_type)})
    if is_openai_configured():
        b64 = base64.standard_b64encode(image_bytes).decode("utf-8")
        return _openai_analyze([
            {"role": "system", "content": IMAGE_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Analyze this image."},
                    {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{b64}"}},
                ],
            },
        ])
    raise HTTPException(status_code=503, detail="Symptom analysis is not configured.")
