# courier_dispatch/modules/packages/schemas.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from courier_dispatch.shared.database.models import ActionType, PackageCategory, PackageSize
from courier_dispatch.shared.schemas.common import AddressFields, BaseResponse

class PackageCreate(BaseModel):
    description: Optional[str] = Field(None, max_length=500)
    pickup_address: AddressFields
    dropoff_address: AddressFields
    action_type: ActionType = Field(ActionType.SEND, description="send or receive")
    category: PackageCategory = PackageCategory.PACKAGE
    size: PackageSize = PackageSize.MEDIUM

class PackageCreateRequest(PackageCreate):
    user_id: int = Field(..., gt=0, description="Owner of the package")

class PackageUpdate(BaseModel):
    """Partial edit of a pending package; omitted fields are left as they are"""
    description: Optional[str] = Field(None, max_length=500)
    pickup_address: Optional[AddressFields] = None
    dropoff_address: Optional[AddressFields] = None
    action_type: Optional[ActionType] = None
    category: Optional[PackageCategory] = None
    size: Optional[PackageSize] = None

class PackageResponse(BaseModel):
    id: int
    user_id: int
    description: Optional[str] = None
    pickup_address_id: int
    dropoff_address_id: int
    action_type: str
    category: str
    size: str
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class PackageResult(BaseResponse):
    package: PackageResponse

class PackageListResponse(BaseResponse):
    packages: List[PackageResponse]
    count: int
