# courier_dispatch/modules/tracking/service.py
from typing import Optional
from sqlalchemy.orm import Session
import logging

from courier_dispatch.config.database import transaction
from courier_dispatch.core.exceptions import DeliveryNotFound, PackageNotFound, UntrackableState
from courier_dispatch.modules.addresses.service import AddressRegistry
from courier_dispatch.modules.deliveries.repository import DeliveryRepository
from courier_dispatch.modules.packages.repository import PackageRepository
from courier_dispatch.shared.database.models import Address, Courier, DeliveryStatus, PackageStatus
from courier_dispatch.shared.services.geocoder import Geocoder
from .schemas import LocationSource, TrackedLocation

logger = logging.getLogger(__name__)

PACKAGE_LOCATION_SOURCE = {
    PackageStatus.PENDING.value: LocationSource.PICKUP,
    PackageStatus.ASSIGNED.value: LocationSource.PICKUP,
    PackageStatus.IN_TRANSIT.value: LocationSource.COURIER,
    PackageStatus.DELIVERED.value: LocationSource.DROPOFF,
}

DELIVERY_LOCATION_SOURCE = {
    DeliveryStatus.ASSIGNED.value: LocationSource.PICKUP,
    DeliveryStatus.PICKED_UP.value: LocationSource.COURIER,
    DeliveryStatus.DELIVERED.value: LocationSource.DROPOFF,
}


class TrackingResolver:
    """Where a package or delivery is right now, derived from its status"""

    def __init__(self, db: Session, geocoder: Geocoder):
        self.db = db
        self.registry = AddressRegistry(db, geocoder)
        self.packages = PackageRepository(db)
        self.deliveries = DeliveryRepository(db)

    async def locate_package(self, package_id: int) -> TrackedLocation:
        package = self.packages.get(package_id)
        if not package:
            raise PackageNotFound(package_id)

        source = PACKAGE_LOCATION_SOURCE.get(package.status)
        if source is None:
            raise UntrackableState("Package", package_id, package.status)

        # An active or finished delivery carries the address snapshot
        delivery = self.deliveries.live_for_package(package_id)
        if delivery:
            pickup, dropoff, courier = delivery.pickup_address, delivery.dropoff_address, delivery.courier
        else:
            pickup, dropoff, courier = package.pickup_address, package.dropoff_address, None

        return await self._resolve(package.status, source, pickup, dropoff, courier)

    async def locate_delivery(self, delivery_id: int) -> TrackedLocation:
        delivery = self.deliveries.get(delivery_id)
        if not delivery:
            raise DeliveryNotFound(delivery_id)

        source = DELIVERY_LOCATION_SOURCE.get(delivery.status)
        if source is None:
            raise UntrackableState("Delivery", delivery_id, delivery.status)

        return await self._resolve(
            delivery.status, source, delivery.pickup_address, delivery.dropoff_address, delivery.courier
        )

    async def _resolve(
        self,
        status: str,
        source: LocationSource,
        pickup: Address,
        dropoff: Address,
        courier: Optional[Courier]
    ) -> TrackedLocation:
        if source == LocationSource.COURIER:
            if courier is not None and courier.has_live_location:
                return TrackedLocation(lat=courier.current_lat, lng=courier.current_lng, status=status, source=source)
            # Courier has not pinged yet
            source = LocationSource.PICKUP

        address = pickup if source == LocationSource.PICKUP else dropoff
        if not address.has_coordinates:
            coordinate = await self.registry.geocode_stored(address)
            with transaction(self.db):
                self.registry.store_coordinates(address, coordinate)

        return TrackedLocation(lat=address.lat, lng=address.lng, status=status, source=source)
