# courier_dispatch/modules/addresses/router.py
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from courier_dispatch.config.database import get_db, transaction
from courier_dispatch.shared.services.geocoder import Geocoder, get_geocoder
from .service import AddressRegistry
from .schemas import AddressResolveRequest, AddressResponse, AddressResult

router = APIRouter()

@router.post("/resolve", response_model=AddressResult)
async def resolve_address(
    address_data: AddressResolveRequest,
    db: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder)
):
    """
    Look up an address by street, number, extra info and postal code,
    creating and geocoding it on first use.

    Geocoding failures return 503 and leave nothing behind; retry later.
    """
    registry = AddressRegistry(db, geocoder)
    coordinates = await registry.geocode_all(address_data)
    with transaction(db):
        address = registry.store_all([address_data], coordinates)[0]

    return AddressResult(
        success=True,
        message="Address resolved",
        address=AddressResponse.model_validate(address)
    )

@router.get("/{address_id}", response_model=AddressResult)
async def get_address(
    address_id: int = Path(..., description="Address ID"),
    db: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder)
):
    registry = AddressRegistry(db, geocoder)
    address = registry.get(address_id)
    return AddressResult(success=True, address=AddressResponse.model_validate(address))
