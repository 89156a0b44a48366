"""Browser geolocation outcomes and map links for the nearby medical help lookup."""
from urllib.parse import quote

# GeolocationPositionError codes reported by the browser
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

_LOCATION_ERROR_PREFIX = "Unable to get your location. "
_LOCATION_ERROR_DETAILS = {
    PERMISSION_DENIED: (
        "Location permission was denied. Please enable location access in your browser settings and try again."
    ),
    POSITION_UNAVAILABLE: "Location information is unavailable. Please check your device's location settings.",
    TIMEOUT: "Location request timed out. Please try again.",
}
UNSUPPORTED_MESSAGE = (
    "Your browser doesn't support geolocation. Please use a modern browser like Chrome, Firefox, or Edge."
)


def location_error_message(code: int | None) -> str:
    """User-facing text for a failed geolocation request."""
    detail = _LOCATION_ERROR_DETAILS.get(code or 0, "An unknown error occurred.")
    return _LOCATION_ERROR_PREFIX + detail


def valid_coordinates(lat: float, lng: float) -> bool:
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def directions_url(origin_lat: float, origin_lng: float, dest_lat: float, dest_lng: float) -> str:
    return (
        "https://www.google.com/maps/dir/?api=1"
        f"&origin={origin_lat},{origin_lng}"
        f"&destination={dest_lat},{dest_lng}"
        "&travelmode=driving"
    )


def maps_url(name: str, place_id: str | None) -> str:
    url = f"https://www.google.com/maps/search/?api=1&query={quote(name or '', safe='')}"
    if place_id:
        url += f"&query_place_id={quote(place_id, safe='')}"
    return url
