# courier_dispatch/shared/schemas/common.py
from pydantic import BaseModel, Field, validator
from typing import Any, Dict, Optional, Tuple
from datetime import datetime

class BaseResponse(BaseModel):
    success: bool
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)

class ErrorResponse(BaseResponse):
    success: bool = False
    error_code: Optional[str] = None
    retryable: bool = False
    details: Optional[Dict[str, Any]] = None

class Coordinate(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

class AddressFields(BaseModel):
    """Address as submitted by clients; city/country only matter for new postal codes and geocoding"""
    street_name: str = Field(..., min_length=1, max_length=100)
    house_number: str = Field(..., min_length=1, max_length=10)
    extra_info: Optional[str] = Field(None, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    city: Optional[str] = Field(None, max_length=50)
    country: Optional[str] = Field(None, max_length=50)

    @validator("street_name", "house_number", "extra_info", "postal_code", "city", "country", pre=True)
    def strip_text(cls, v):
        if isinstance(v, int):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def identity(self) -> Tuple[str, str, str, str]:
        return (self.street_name, self.house_number, self.extra_info or "", self.postal_code)

    def one_line(self) -> str:
        """Single-line form used as the geocoder query"""
        line = f"{self.street_name} {self.house_number}"
        if self.extra_info:
            line += f", {self.extra_info}"
        parts = [line]
        if self.city:
            parts.append(self.city)
        parts.append(self.postal_code)
        if self.country:
            parts.append(self.country)
        return ", ".join(parts)
