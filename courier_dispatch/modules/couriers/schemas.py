# courier_dispatch/modules/couriers/schemas.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from courier_dispatch.shared.schemas.common import AddressFields, BaseResponse

class BecomeCourierRequest(BaseModel):
    user_id: int = Field(..., gt=0, description="Existing user to onboard")
    pickup_radius: Optional[float] = Field(None, gt=0, description="Kilometers around the start address")
    dropoff_radius: Optional[float] = Field(None, gt=0, description="Kilometers around the destination address")

class CourierRouteUpdate(BaseModel):
    start_address: AddressFields
    destination_address: AddressFields

class AvailabilityUpdate(BaseModel):
    availability: bool

class LocationUpdate(BaseModel):
    lat: float
    lng: float

class RadiiUpdate(BaseModel):
    pickup_radius: Optional[float] = None
    dropoff_radius: Optional[float] = None

class CourierResponse(BaseModel):
    id: int
    user_id: int
    start_address_id: Optional[int] = None
    destination_address_id: Optional[int] = None
    pickup_radius: float
    dropoff_radius: float
    availability: bool
    current_lat: Optional[float] = None
    current_lng: Optional[float] = None
    location_updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CourierResult(BaseResponse):
    courier: CourierResponse
