# courier_dispatch/modules/addresses/schemas.py
from pydantic import BaseModel
from typing import Optional

from courier_dispatch.shared.schemas.common import AddressFields, BaseResponse

class AddressResolveRequest(AddressFields):
    pass

class AddressResponse(BaseModel):
    id: int
    street_name: str
    house_number: str
    extra_info: Optional[str] = None
    postal_code: str
    lat: Optional[float] = None
    lng: Optional[float] = None

    class Config:
        from_attributes = True

class AddressResult(BaseResponse):
    address: AddressResponse
