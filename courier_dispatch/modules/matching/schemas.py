# courier_dispatch/modules/matching/schemas.py
from pydantic import BaseModel, Field
from typing import List, Optional

from courier_dispatch.modules.couriers.schemas import CourierResponse
from courier_dispatch.modules.packages.schemas import PackageResponse
from courier_dispatch.shared.schemas.common import AddressFields, BaseResponse

class PackageSearchRequest(BaseModel):
    user_id: int = Field(..., gt=0, description="User searching as a courier")
    start_address: Optional[AddressFields] = Field(None, description="Defaults to the courier's stored route")
    destination_address: Optional[AddressFields] = Field(None, description="Defaults to the courier's stored route")
    pickup_radius: Optional[float] = Field(None, gt=0, description="Defaults to the courier's pickup radius")
    dropoff_radius: Optional[float] = Field(None, gt=0, description="Defaults to the courier's dropoff radius")
    use_live_location: bool = Field(False, description="Measure pickups from the last reported position")

class PackageSearchResponse(BaseResponse):
    courier: CourierResponse
    packages: List[PackageResponse]
    count: int
