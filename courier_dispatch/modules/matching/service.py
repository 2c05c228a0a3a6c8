# courier_dispatch/modules/matching/service.py
from typing import Dict, List, Optional, Set, Tuple
from sqlalchemy.orm import Session
import logging

from courier_dispatch.config.database import transaction
from courier_dispatch.core.exceptions import GeocodingFailed, LiveLocationUnavailable, RouteNotSet
from courier_dispatch.modules.addresses.service import AddressRegistry
from courier_dispatch.modules.couriers.service import CourierDirectory, check_radius
from courier_dispatch.modules.packages.repository import PackageRepository
from courier_dispatch.shared.database.models import Address, Courier, Package
from courier_dispatch.shared.schemas.common import AddressFields, Coordinate
from courier_dispatch.shared.services.distance import distance_km
from courier_dispatch.shared.services.geocoder import Geocoder

logger = logging.getLogger(__name__)


class MatchingEngine:
    """Radius matching of pending packages against a courier's route"""

    def __init__(self, db: Session, geocoder: Geocoder):
        self.db = db
        self.geocoder = geocoder
        self.registry = AddressRegistry(db, geocoder)
        self.directory = CourierDirectory(db, geocoder)
        self.packages = PackageRepository(db)

    async def find_candidates(
        self,
        user_id: int,
        start: Optional[AddressFields] = None,
        destination: Optional[AddressFields] = None,
        pickup_radius: Optional[float] = None,
        dropoff_radius: Optional[float] = None,
        use_live_location: bool = False
    ) -> List[Package]:
        """
        Pending packages whose pickup lies within `pickup_radius` km of the
        route start and whose dropoff lies within `dropoff_radius` km of the
        route destination. Both bounds are inclusive.

        Write side effect: the resolved route is stored on the courier and
        becomes the default for later searches that omit start/destination.

        `use_live_location` measures pickups from the courier's last
        reported position instead of the start address.

        Packages owned by the requesting user are never returned, and a
        package whose addresses cannot be geocoded is dropped rather than
        failing the search. The result is unordered.

        A search rejected for its radii or a missing live location leaves
        the stored route untouched.
        """
        courier = self.directory.get_by_user(user_id)
        pickup_radius = check_radius("pickup_radius", pickup_radius, courier.pickup_radius)
        dropoff_radius = check_radius("dropoff_radius", dropoff_radius, courier.dropoff_radius)
        if use_live_location and not courier.has_live_location:
            raise LiveLocationUnavailable(courier.id)

        start_address, destination_address = await self._refresh_route(courier, start, destination)
        start_point = (courier.current_lat, courier.current_lng) if use_live_location else start_address

        pending = self.packages.pending_not_owned_by(user_id)
        coordinates: Dict[int, Optional[Coordinate]] = {}
        failed: Set[int] = set()
        located = []
        for package in pending:
            if await self._locate(package, coordinates, failed):
                located.append(package)

        candidates = []
        with transaction(self.db):
            for package in located:
                for address in (package.pickup_address, package.dropoff_address):
                    self.registry.store_coordinates(address, coordinates.get(address.id))
                if (
                    distance_km(start_point, package.pickup_address) <= pickup_radius
                    and distance_km(destination_address, package.dropoff_address) <= dropoff_radius
                ):
                    candidates.append(package)

        logger.info(
            f"Courier {courier.id}: {len(candidates)} candidate(s) within "
            f"{pickup_radius} km / {dropoff_radius} km"
        )
        return candidates

    async def _refresh_route(
        self,
        courier: Courier,
        start: Optional[AddressFields],
        destination: Optional[AddressFields]
    ) -> Tuple[Address, Address]:
        if (start is None and courier.start_address_id is None) or (
            destination is None and courier.destination_address_id is None
        ):
            raise RouteNotSet(courier.id)

        start_address = courier.start_address if start is None else None
        destination_address = courier.destination_address if destination is None else None
        stored = [address for address in (start_address, destination_address) if address is not None]
        supplied = [fields for fields in (start, destination) if fields is not None]

        try:
            # A stored route may still be missing coordinates
            stored_coordinates = {}
            for address in stored:
                if address.id not in stored_coordinates:
                    stored_coordinates[address.id] = await self.registry.geocode_stored(address)
            coordinates = await self.registry.geocode_all(*supplied)
        except GeocodingFailed as e:
            logger.error(f"Courier {courier.id} route could not be geocoded: {e}")
            raise

        with transaction(self.db):
            for address in stored:
                self.registry.store_coordinates(address, stored_coordinates[address.id])
            resolved = iter(self.registry.store_all(supplied, coordinates))
            if start is not None:
                start_address = next(resolved)
            if destination is not None:
                destination_address = next(resolved)
            self.directory.apply_route(courier, start_address.id, destination_address.id)

        return start_address, destination_address

    async def _locate(self, package: Package, coordinates: Dict[int, Optional[Coordinate]], failed: Set[int]) -> bool:
        """
        Geocode whichever package addresses lack coordinates into `coordinates`.
        False drops the package; an address that failed once is not retried.
        """
        for address in (package.pickup_address, package.dropoff_address):
            if address.id in failed:
                logger.warning(f"Skipping package {package.id}: address {address.id} could not be geocoded")
                return False
            if address.id in coordinates:
                continue
            try:
                coordinates[address.id] = await self.registry.geocode_stored(address)
            except GeocodingFailed as e:
                failed.add(address.id)
                logger.warning(f"Skipping package {package.id}: {e}")
                return False
        return True
