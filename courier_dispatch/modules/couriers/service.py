# courier_dispatch/modules/couriers/service.py
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from courier_dispatch.config.database import transaction
from courier_dispatch.config.settings import settings
from courier_dispatch.core.exceptions import (
    AlreadyCourier, CourierNotFound, InvalidRadius, UserNotFound
)
from courier_dispatch.modules.addresses.service import AddressRegistry
from courier_dispatch.shared.database.models import Courier, UserRole
from courier_dispatch.shared.schemas.common import AddressFields
from courier_dispatch.shared.services.distance import as_lat_lng
from courier_dispatch.shared.services.geocoder import Geocoder
from .repository import CourierRepository

logger = logging.getLogger(__name__)


def check_radius(name: str, value: Optional[float], default: float) -> float:
    """Validate a radius in kilometers, falling back to `default` when omitted"""
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidRadius(name, value)
    try:
        radius = float(value)
    except (TypeError, ValueError):
        raise InvalidRadius(name, value)
    if not radius > 0 or radius == float("inf"):
        raise InvalidRadius(name, value)
    return radius


class CourierDirectory:
    """
    Courier profiles: planned route, acceptance radii, availability and
    live location. Nothing here touches packages or deliveries.
    """

    def __init__(self, db: Session, geocoder: Optional[Geocoder] = None):
        self.db = db
        self.geocoder = geocoder
        self.repository = CourierRepository(db)

    def get(self, courier_id: int) -> Courier:
        courier = self.repository.get(courier_id)
        if not courier:
            raise CourierNotFound(courier_id)
        return courier

    def get_by_user(self, user_id: int) -> Courier:
        courier = self.repository.get_by_user(user_id)
        if not courier:
            raise CourierNotFound(user_id, by_user=True)
        return courier

    def onboard(
        self,
        user_id: int,
        pickup_radius: Optional[float] = None,
        dropoff_radius: Optional[float] = None
    ) -> Courier:
        """Turn an existing user into a courier with default radii and no route"""
        pickup_radius = check_radius("pickup_radius", pickup_radius, settings.default_pickup_radius_km)
        dropoff_radius = check_radius("dropoff_radius", dropoff_radius, settings.default_dropoff_radius_km)

        user = self.repository.get_user(user_id)
        if not user:
            raise UserNotFound(user_id)
        if self.repository.get_by_user(user_id):
            raise AlreadyCourier(user_id)

        try:
            with transaction(self.db):
                courier = self.repository.create(user_id, pickup_radius, dropoff_radius)
                user.role = UserRole.COURIER.value
        except IntegrityError:
            # Another request onboarded the same user first
            raise AlreadyCourier(user_id)

        logger.info(f"User {user_id} onboarded as courier {courier.id}")
        return courier

    async def set_route(self, courier_id: int, start: AddressFields, destination: AddressFields) -> Courier:
        """Resolve both addresses and store them as the courier's active route"""
        courier = self.get(courier_id)
        registry = AddressRegistry(self.db, self.geocoder)

        coordinates = await registry.geocode_all(start, destination)
        with transaction(self.db):
            start_address, destination_address = registry.store_all([start, destination], coordinates)
            self.apply_route(courier, start_address.id, destination_address.id)

        return courier

    def apply_route(self, courier: Courier, start_address_id: int, destination_address_id: int) -> None:
        """Point the courier at already resolved addresses; caller commits"""
        if (courier.start_address_id, courier.destination_address_id) == (start_address_id, destination_address_id):
            return
        courier.start_address_id = start_address_id
        courier.destination_address_id = destination_address_id
        self.db.flush()
        logger.info(f"Courier {courier.id} route set: {start_address_id} -> {destination_address_id}")

    def set_availability(self, courier_id: int, available: bool) -> Courier:
        courier = self.get(courier_id)
        with transaction(self.db):
            courier.availability = bool(available)
        logger.info(f"Courier {courier_id} availability: {courier.availability}")
        return courier

    def update_live_location(self, courier_id: int, lat: float, lng: float) -> Courier:
        """Last write wins; no ordering between concurrent pings"""
        lat, lng = as_lat_lng((lat, lng))
        courier = self.get(courier_id)
        with transaction(self.db):
            courier.current_lat = lat
            courier.current_lng = lng
            courier.location_updated_at = datetime.now()
        logger.debug(f"Courier {courier_id} at ({lat}, {lng})")
        return courier

    def set_radii(
        self,
        courier_id: int,
        pickup_radius: Optional[float] = None,
        dropoff_radius: Optional[float] = None
    ) -> Courier:
        courier = self.get(courier_id)
        pickup_radius = check_radius("pickup_radius", pickup_radius, courier.pickup_radius)
        dropoff_radius = check_radius("dropoff_radius", dropoff_radius, courier.dropoff_radius)

        with transaction(self.db):
            courier.pickup_radius = pickup_radius
            courier.dropoff_radius = dropoff_radius
        logger.info(f"Courier {courier_id} radii: pickup {pickup_radius} km, dropoff {dropoff_radius} km")
        return courier
