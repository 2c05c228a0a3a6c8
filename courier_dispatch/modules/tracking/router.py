# courier_dispatch/modules/tracking/router.py
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from courier_dispatch.config.database import get_db
from courier_dispatch.shared.services.geocoder import Geocoder, get_geocoder
from .service import TrackingResolver
from .schemas import TrackingResponse

router = APIRouter()

@router.get("/packages/{package_id}", response_model=TrackingResponse)
async def track_package(
    package_id: int = Path(..., description="Package ID"),
    db: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder)
):
    """
    Current location of a package:
    - pending / assigned: pickup address
    - in_transit: courier's last reported position, or pickup until the first ping
    - delivered: dropoff address
    """
    resolver = TrackingResolver(db, geocoder)
    location = await resolver.locate_package(package_id)
    return TrackingResponse(success=True, entity="package", id=package_id, location=location)

@router.get("/deliveries/{delivery_id}", response_model=TrackingResponse)
async def track_delivery(
    delivery_id: int = Path(..., description="Delivery ID"),
    db: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder)
):
    """Current location of a delivery; cancelled deliveries cannot be tracked (409)"""
    resolver = TrackingResolver(db, geocoder)
    location = await resolver.locate_delivery(delivery_id)
    return TrackingResponse(success=True, entity="delivery", id=delivery_id, location=location)
