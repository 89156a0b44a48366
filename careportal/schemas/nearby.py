from pydantic import BaseModel


class NearbyRequest(BaseModel):
    lat: float | None = None
    lng: float | None = None
    severity: str = "moderate"
    # GeolocationPositionError.code when the browser could not locate the user
    geolocation_error: int | None = None


class PlaceLocation(BaseModel):
    lat: float
    lng: float


class NearbyPlace(BaseModel):
    name: str
    address: str = ""
    rating: float | None = None
    location: PlaceLocation
    place_id: str = ""
    types: list[str] = []
    is_open: bool | None = None
    directions_url: str
    maps_url: str


class NearbyResponse(BaseModel):
    heading: str
    search_type: str
    results: list[NearbyPlace]
