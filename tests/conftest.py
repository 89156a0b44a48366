"""Pytest fixtures: test client, in-memory DB, patient and doctor accounts."""
import os
import tempfile
import uuid
from datetime import date, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

# In-memory SQLite and no external services; must be set before careportal is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["ANALYSIS_API_URL"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENAI_API_KEYS"] = ""
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="careportal-uploads-")
# High limits so the whole suite can register and log in; /debug/rate-test keeps its own 5/minute
os.environ["RATE_LIMIT_PER_MINUTE"] = "1000"
os.environ["RATE_LIMIT_REGISTER_PER_MINUTE"] = "1000"
os.environ["RATE_LIMIT_REGISTER_PER_HOUR"] = "10000"
os.environ["RATE_LIMIT_LOGIN_PER_MINUTE"] = "1000"
os.environ["RATE_LIMIT_LOGIN_PER_HOUR"] = "10000"

from sqlmodel import Session  # noqa: E402

from careportal.core.database import engine  # noqa: E402
from careportal.main import app  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture(scope="function")
def client():
    """TestClient; the lifespan creates the tables in the shared in-memory DB."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


def register_and_login(client: TestClient, role: str, **fields) -> dict:
    """Creates a fresh account (unique email) and returns id, email and auth headers."""
    email = f"{role}-{uuid.uuid4().hex[:12]}@clinic.org"
    data = {
        "email": email,
        "password": PASSWORD,
        "first_name": fields.pop("first_name", "Test"),
        "last_name": fields.pop("last_name", role.title()),
        "role": role,
        **fields,
    }
    r = client.post("/auth/register", data=data)
    assert r.status_code == 200, f"Register failed: {r.status_code} {r.text}"
    user_id = r.json()["id"]
    r = client.post("/auth/login", data={"email": email, "password": PASSWORD})
    assert r.status_code == 200, f"Login failed: {r.status_code} {r.text}"
    token = r.json()["access_token"]
    return {"id": user_id, "email": email, "token": token, "headers": {"Authorization": f"Bearer {token}"}}


@pytest.fixture
def patient(client: TestClient) -> dict:
    return register_and_login(client, "patient", first_name="Ada", last_name="Lovelace", phone="+15550100")


@pytest.fixture
def doctor(client: TestClient) -> dict:
    return register_and_login(client, "doctor", first_name="Gregory", last_name="House", specialty="Diagnostics")


@pytest.fixture
def make_user(client: TestClient):
    def _make(role: str = "patient", **fields) -> dict:
        return register_and_login(client, role, **fields)
    return _make


@pytest.fixture
def tomorrow() -> date:
    return date.today() + timedelta(days=1)


@pytest.fixture
def book(client: TestClient, tomorrow: date):
    """Books an appointment through the API and returns the response body."""
    def _book(patient: dict, doctor: dict, **body) -> dict:
        payload = {
            "doctor_id": doctor["id"],
            "appointment_date": tomorrow.isoformat(),
            "appointment_time": "10:30:00",
            "reason": "Recurring headaches",
            **body,
        }
        r = client.post("/appointments", json=payload, headers=patient["headers"])
        assert r.status_code == 201, f"Booking failed: {r.status_code} {r.text}"
        return r.json()
    return _book


URGENT_RESULT = {
    "symptoms": ["chest pain", "shortness of breath"],
    "diseases": [{"name": "Angina", "confidence": 0.7, "description": "Reduced blood flow to the heart"}, "Anxiety"],
    "severity": "urgent",
    "recommendations": ["Avoid exertion", "Keep a symptom diary"],
    "urgency": False,
    "confidence": 0.72,
    "follow_up_questions": ["When did the pain start?"],
    "body_parts": ["chest"],
}

MILD_RESULT = {
    "symptoms_with_confidence": [
        {"symptom": "runny nose", "confidence": 0.9},
        {"name": "sneezing", "confidence": 0.65, "source": "keyword"},
        {"symptom": "fatigue", "confidence": 0.3},
    ],
    "diseases": [{"name": "Common cold", "score": 0.8}],
    "severity": "mild",
    "recommendations": ["Rest", "Drink plenty of fluids"],
    "urgency": False,
}


@pytest.fixture
def stub_analysis(monkeypatch):
    """
    Replaces the external analysis calls. ``stub.results`` holds the canned
    answers per kind, ``stub.calls`` records (input_type, input) pairs.
    """
    stub = SimpleNamespace(calls=[], results={"text": URGENT_RESULT, "image": MILD_RESULT})

    def fake_symptoms(text: str, input_type: str = "text") -> dict:
        stub.calls.append((input_type, text))
        return stub.results["text"]

    def fake_image(image_bytes: bytes, filename: str, mime_type: str) -> dict:
        stub.calls.append(("image", filename))
        return stub.results["image"]

    monkeypatch.setattr("careportal.api.analysis.analyze_symptoms", fake_symptoms)
    monkeypatch.setattr("careportal.api.analysis.analyze_image", fake_image)
    return stub
