# courier_dispatch/modules/deliveries/schemas.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from courier_dispatch.shared.schemas.common import BaseResponse

class DeliveryAssign(BaseModel):
    package_id: int = Field(..., gt=0, description="Pending package to claim")
    courier_id: int = Field(..., gt=0, description="Courier taking the package")

class DeliveryStatusUpdate(BaseModel):
    status: str = Field(..., description="picked_up or delivered")
    timestamp: Optional[datetime] = Field(None, description="Defaults to now")

class DeliveryResponse(BaseModel):
    id: int
    package_id: int
    courier_id: int
    pickup_address_id: int
    dropoff_address_id: int
    status: str
    assigned_at: Optional[datetime] = None
    pickup_time: Optional[datetime] = None
    delivery_time: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class DeliveryResult(BaseResponse):
    delivery: DeliveryResponse

class DeliveryHistoryResponse(BaseResponse):
    deliveries: List[DeliveryResponse]
    count: int
