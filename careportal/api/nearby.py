from fastapi import APIRouter, Depends, HTTPException

from careportal.api.deps import get_current_user
from careportal.core.geo import UNSUPPORTED_MESSAGE, location_error_message, valid_coordinates
from careportal.models import User
from careportal.schemas import NearbyRequest, NearbyResponse
from careportal.services.nearby import find_nearby_help

router = APIRouter(tags=["nearby"])

# geolocation_error=0: the browser has no geolocation API at all
GEOLOCATION_UNSUPPORTED = 0


@router.post("/nearby", response_model=NearbyResponse)
def nearby(body: NearbyRequest, _: User = Depends(get_current_user)):
    """Medical facilities around the patient, chosen by the severity of their result."""
    if body.geolocation_error is not None:
        if body.geolocation_error == GEOLOCATION_UNSUPPORTED:
            raise HTTPException(status_code=422, detail=UNSUPPORTED_MESSAGE)
        raise HTTPException(status_code=422, detail=location_error_message(body.geolocation_error))
    if body.lat is None or body.lng is None:
        raise HTTPException(status_code=422, detail="Location coordinates are required.")
    if not valid_coordinates(body.lat, body.lng):
        raise HTTPException(status_code=422, detail="Location coordinates are out of range.")
    severity = (body.severity or "moderate").strip().lower()
    return find_nearby_help(body.lat, body.lng, severity)
