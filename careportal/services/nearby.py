"""Nearby medical facility lookup through the external nearby_medical_help endpoint."""
import logging

import httpx
from fastapi import HTTPException

from careportal.core.config import settings
from careportal.core.geo import directions_url, maps_url
from careportal.core.triage import nearby_search_heading

logger = logging.getLogger(__name__)

FETCH_FAILED = "Failed to fetch nearby medical facilities"


def _place(raw: dict, lat: float, lng: float) -> dict | None:
    location = raw.get("location") or {}
    try:
        dest_lat = float(location["lat"])
        dest_lng = float(location["lng"])
    except (KeyError, TypeError, ValueError):
        return None
    name = str(raw.get("name") or "Medical facility")
    place_id = str(raw.get("place_id") or "")
    return {
        "name": name,
        "address": str(raw.get("address") or ""),
        "rating": raw.get("rating"),
        "location": {"lat": dest_lat, "lng": dest_lng},
        "place_id": place_id,
        "types": [str(t) for t in (raw.get("types") or [])],
        "is_open": raw.get("is_open"),
        "directions_url": directions_url(lat, lng, dest_lat, dest_lng),
        "maps_url": maps_url(name, place_id),
    }


def find_nearby_help(lat: float, lng: float, severity: str) -> dict:
    """Single lookup, no retry. Places without coordinates are dropped."""
    timeout = httpx.Timeout(settings.nearby_api_timeout, connect=5.0)
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.post(
                settings.nearby_api_url,
                json={"lat": lat, "lng": lng, "severity": severity},
            )
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Nearby lookup failed (severity=%s): %s", severity, e)
        raise HTTPException(status_code=502, detail=FETCH_FAILED) from e
    if not isinstance(data, dict):
        raise HTTPException(status_code=502, detail=FETCH_FAILED)
    places = [p for p in (_place(r, lat, lng) for r in (data.get("results") or []) if isinstance(r, dict)) if p]
    return {
        "heading": nearby_search_heading(severity),
        "search_type": str(data.get("search_type") or "medical facilities"),
        "results": places,
    }
