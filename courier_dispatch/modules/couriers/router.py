# courier_dispatch/modules/couriers/router.py
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from courier_dispatch.config.database import get_db
from courier_dispatch.shared.services.geocoder import Geocoder, get_geocoder
from .service import CourierDirectory
from .schemas import (
    BecomeCourierRequest, CourierRouteUpdate, AvailabilityUpdate, LocationUpdate,
    RadiiUpdate, CourierResponse, CourierResult
)

router = APIRouter()

def _result(courier, message: str = "") -> CourierResult:
    return CourierResult(success=True, message=message, courier=CourierResponse.model_validate(courier))

@router.post("/become", response_model=CourierResult, status_code=201)
async def become_courier(
    request: BecomeCourierRequest,
    db: Session = Depends(get_db)
):
    """
    Onboard an existing user as a courier.

    Radii default to the configured values; the route is set later via
    PUT /couriers/{id}/route or the first package search.
    """
    directory = CourierDirectory(db)
    courier = directory.onboard(request.user_id, request.pickup_radius, request.dropoff_radius)
    return _result(courier, "Courier created")

@router.get("/user/{user_id}", response_model=CourierResult)
async def get_courier_by_user(
    user_id: int = Path(..., description="User ID"),
    db: Session = Depends(get_db)
):
    directory = CourierDirectory(db)
    return _result(directory.get_by_user(user_id))

@router.get("/{courier_id}", response_model=CourierResult)
async def get_courier(
    courier_id: int = Path(..., description="Courier ID"),
    db: Session = Depends(get_db)
):
    directory = CourierDirectory(db)
    return _result(directory.get(courier_id))

@router.put("/{courier_id}/route", response_model=CourierResult)
async def set_route(
    route: CourierRouteUpdate,
    courier_id: int = Path(..., description="Courier ID"),
    db: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder)
):
    """Resolve and store the courier's start and destination addresses"""
    directory = CourierDirectory(db, geocoder)
    courier = await directory.set_route(courier_id, route.start_address, route.destination_address)
    return _result(courier, "Route updated")

@router.put("/{courier_id}/availability", response_model=CourierResult)
async def set_availability(
    update: AvailabilityUpdate,
    courier_id: int = Path(..., description="Courier ID"),
    db: Session = Depends(get_db)
):
    directory = CourierDirectory(db)
    return _result(directory.set_availability(courier_id, update.availability), "Availability updated")

@router.put("/{courier_id}/location", response_model=CourierResult)
async def update_location(
    location: LocationUpdate,
    courier_id: int = Path(..., description="Courier ID"),
    db: Session = Depends(get_db)
):
    """Live location ping; the latest one wins"""
    directory = CourierDirectory(db)
    return _result(directory.update_live_location(courier_id, location.lat, location.lng), "Location updated")

@router.put("/{courier_id}/radii", response_model=CourierResult)
async def set_radii(
    radii: RadiiUpdate,
    courier_id: int = Path(..., description="Courier ID"),
    db: Session = Depends(get_db)
):
    directory = CourierDirectory(db)
    courier = directory.set_radii(courier_id, radii.pickup_radius, radii.dropoff_radius)
    return _result(courier, "Radii updated")
