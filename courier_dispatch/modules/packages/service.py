# courier_dispatch/modules/packages/service.py
from typing import List, Optional
from sqlalchemy.orm import Session
import logging

from courier_dispatch.config.database import transaction
from courier_dispatch.core.exceptions import PackageLocked, PackageNotFound, UserNotFound
from courier_dispatch.modules.addresses.service import AddressRegistry
from courier_dispatch.shared.database.models import Package, PackageStatus
from courier_dispatch.shared.services.geocoder import Geocoder
from .repository import PackageRepository
from .schemas import PackageCreate, PackageUpdate

logger = logging.getLogger(__name__)

class PackageService:
    def __init__(self, db: Session, geocoder: Optional[Geocoder] = None):
        self.db = db
        self.geocoder = geocoder
        self.repository = PackageRepository(db)

    async def create_package(self, user_id: int, package_data: PackageCreate) -> Package:
        """Register a pending package; both addresses must geocode or nothing is stored"""
        if not self.repository.get_user(user_id):
            raise UserNotFound(user_id)

        registry = AddressRegistry(self.db, self.geocoder)
        addresses = [package_data.pickup_address, package_data.dropoff_address]
        coordinates = await registry.geocode_all(*addresses)
        with transaction(self.db):
            pickup, dropoff = registry.store_all(addresses, coordinates)
            package = self.repository.create(
                user_id=user_id,
                description=package_data.description,
                pickup_address_id=pickup.id,
                dropoff_address_id=dropoff.id,
                action_type=package_data.action_type.value,
                category=package_data.category.value,
                size=package_data.size.value
            )

        logger.info(f"Package {package.id} created by user {user_id}")
        return package

    def get(self, package_id: int) -> Package:
        package = self.repository.get(package_id)
        if not package:
            raise PackageNotFound(package_id)
        return package

    def list_packages(self, user_id: Optional[int] = None, status: Optional[PackageStatus] = None) -> List[Package]:
        status_value = status.value if isinstance(status, PackageStatus) else status
        return self.repository.list(user_id=user_id, status=status_value)

    async def update_package(self, package_id: int, changes: PackageUpdate) -> Package:
        """
        Edit a package while it is still pending.

        New addresses go through the registry like on creation. Deliveries
        keep the addresses they were assigned with, so once a package is
        claimed it is locked.
        """
        package = self.get(package_id)
        if package.status != PackageStatus.PENDING.value:
            raise PackageLocked(package_id, package.status)

        values = {}
        if "description" in changes.model_fields_set:
            values["description"] = changes.description
        for name in ("action_type", "category", "size"):
            value = getattr(changes, name)
            if value is not None:
                values[name] = value.value

        registry = AddressRegistry(self.db, self.geocoder)
        addresses = [fields for fields in (changes.pickup_address, changes.dropoff_address) if fields is not None]
        coordinates = await registry.geocode_all(*addresses)

        with transaction(self.db):
            resolved = iter(registry.store_all(addresses, coordinates))
            if changes.pickup_address is not None:
                values["pickup_address_id"] = next(resolved).id
            if changes.dropoff_address is not None:
                values["dropoff_address_id"] = next(resolved).id

            if values and not self.repository.update_if_pending(package_id, **values):
                # Claimed while the addresses were being geocoded
                raise PackageLocked(package_id, self.repository.current_status(package_id))

        logger.info(f"Package {package_id} updated: {sorted(values)}")
        return package

    def delete_package(self, package_id: int) -> None:
        """Remove a pending package; refused once a delivery is live or done"""
        package = self.get(package_id)
        if package.status != PackageStatus.PENDING.value or self.repository.has_live_delivery(package_id):
            raise PackageLocked(package_id, package.status)

        with transaction(self.db):
            if not self.repository.delete_if_pending(package_id):
                status = self.repository.current_status(package_id)
                if status is None:
                    raise PackageNotFound(package_id)
                raise PackageLocked(package_id, status)
            self.db.expunge(package)

        logger.info(f"Package {package_id} deleted")
