"""Nearby medical help: geolocation outcomes and the external lookup."""
import httpx
import pytest
from fastapi.testclient import TestClient

from careportal.core.config import settings
from careportal.core.geo import UNSUPPORTED_MESSAGE

PLACES = {
    "search_type": "urgent care",
    "results": [
        {
            "name": "Mercy Urgent Care",
            "address": "1400 Locust St",
            "rating": 4.4,
            "location": {"lat": 40.437, "lng": -79.985},
            "place_id": "place-1",
            "types": ["hospital", "health"],
            "is_open": True,
        },
        {"name": "No coordinates clinic", "address": "somewhere"},
    ],
}


class FakeClient:
    """Stands in for httpx.Client; answers every POST with ``answer``."""
    answer = None
    requests: list = []

    def __init__(self, *args, **kwargs):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def post(self, url, json=None, **kwargs):
        FakeClient.requests.append((url, json))
        if isinstance(self.answer, Exception):
            raise self.answer
        status_code, payload = self.answer
        return httpx.Response(status_code, json=payload, request=httpx.Request("POST", url))


@pytest.fixture
def fake_nearby(monkeypatch):
    FakeClient.answer = (200, PLACES)
    FakeClient.requests = []
    monkeypatch.setattr("careportal.services.nearby.httpx.Client", FakeClient)
    return FakeClient


def test_nearby_results(client: TestClient, patient: dict, fake_nearby):
    r = client.post("/nearby", json={"lat": 40.44, "lng": -79.99, "severity": "Urgent"}, headers=patient["headers"])
    assert r.status_code == 200, r.text
    j = r.json()
    assert fake_nearby.requests == [(settings.nearby_api_url, {"lat": 40.44, "lng": -79.99, "severity": "urgent"})]
    assert j["heading"] == "Urgent Care Facilities"
    assert j["search_type"] == "urgent care"
    assert len(j["results"]) == 1
    place = j["results"][0]
    assert place["name"] == "Mercy Urgent Care"
    assert place["directions_url"].endswith("&origin=40.44,-79.99&destination=40.437,-79.985&travelmode=driving")
    assert place["maps_url"] == (
        "https://www.google.com/maps/search/?api=1&query=Mercy%20Urgent%20Care&query_place_id=place-1"
    )


def test_nearby_upstream_failure(client: TestClient, patient: dict, fake_nearby):
    fake_nearby.answer = (500, {"detail": "boom"})
    r = client.post("/nearby", json={"lat": 1.0, "lng": 2.0, "severity": "emergency"}, headers=patient["headers"])
    assert r.status_code == 502
    assert r.json()["error"] == "Failed to fetch nearby medical facilities"

    fake_nearby.answer = httpx.ConnectError("refused")
    r = client.post("/nearby", json={"lat": 1.0, "lng": 2.0}, headers=patient["headers"])
    assert r.status_code == 502


@pytest.mark.parametrize(
    "code,fragment",
    [(1, "permission was denied"), (2, "unavailable"), (3, "timed out"), (9, "unknown error")],
)
def test_geolocation_errors(client: TestClient, patient: dict, fake_nearby, code, fragment):
    r = client.post("/nearby", json={"geolocation_error": code}, headers=patient["headers"])
    assert r.status_code == 422
    assert r.json()["error"].startswith("Unable to get your location. ")
    assert fragment in r.json()["error"]
    assert fake_nearby.requests == []


def test_geolocation_unsupported(client: TestClient, patient: dict, fake_nearby):
    r = client.post("/nearby", json={"geolocation_error": 0}, headers=patient["headers"])
    assert r.status_code == 422
    assert r.json()["error"] == UNSUPPORTED_MESSAGE


def test_coordinates_checked(client: TestClient, patient: dict, fake_nearby):
    assert client.post("/nearby", json={"lat": 10.0}, headers=patient["headers"]).status_code == 422
    assert client.post("/nearby", json={"lat": 95.0, "lng": 0.0}, headers=patient["headers"]).status_code == 422
    assert fake_nearby.requests == []


def test_nearby_requires_login(client: TestClient):
    assert client.post("/nearby", json={"lat": 1.0, "lng": 2.0}).status_code == 401
