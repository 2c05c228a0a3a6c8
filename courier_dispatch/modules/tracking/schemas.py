# courier_dispatch/modules/tracking/schemas.py
from pydantic import BaseModel, Field
from enum import Enum

from courier_dispatch.shared.schemas.common import BaseResponse

class LocationSource(str, Enum):
    PICKUP = "pickup"
    COURIER = "courier"
    DROPOFF = "dropoff"

class TrackedLocation(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    status: str
    source: LocationSource

class TrackingResponse(BaseResponse):
    entity: str
    id: int
    location: TrackedLocation
