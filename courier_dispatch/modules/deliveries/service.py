# courier_dispatch/modules/deliveries/service.py
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Union
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from courier_dispatch.config.database import transaction
from courier_dispatch.core.exceptions import (
    ConsistencyError, CourierUnavailable, DeliveryNotFound, InvalidTransition,
    OwnPackage, PackageLinkMissing, PackageNotAvailable, PackageNotFound,
    PackageStatusDrift, RouteNotSet, UserNotFound
)
from courier_dispatch.modules.couriers.service import CourierDirectory
from courier_dispatch.modules.packages.repository import PackageRepository
from courier_dispatch.shared.database.models import Delivery, DeliveryStatus, PackageStatus
from .repository import DeliveryRepository

logger = logging.getLogger(__name__)

# Every legal delivery move; nothing leaves a terminal state
DELIVERY_TRANSITIONS: Dict[DeliveryStatus, FrozenSet[DeliveryStatus]] = {
    DeliveryStatus.ASSIGNED: frozenset({DeliveryStatus.PICKED_UP, DeliveryStatus.CANCELLED}),
    DeliveryStatus.PICKED_UP: frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED}),
    DeliveryStatus.DELIVERED: frozenset(),
    DeliveryStatus.CANCELLED: frozenset(),
}

# Package status that must accompany each delivery status
PACKAGE_STATUS_FOR: Dict[DeliveryStatus, PackageStatus] = {
    DeliveryStatus.ASSIGNED: PackageStatus.ASSIGNED,
    DeliveryStatus.PICKED_UP: PackageStatus.IN_TRANSIT,
    DeliveryStatus.DELIVERED: PackageStatus.DELIVERED,
    DeliveryStatus.CANCELLED: PackageStatus.PENDING,
}

# Column stamped when a delivery enters the status
TIMESTAMP_COLUMN: Dict[DeliveryStatus, str] = {
    DeliveryStatus.PICKED_UP: "pickup_time",
    DeliveryStatus.DELIVERED: "delivery_time",
    DeliveryStatus.CANCELLED: "cancelled_at",
}

# Targets reachable through advance(); cancellation has its own entry point
ADVANCE_TARGETS = frozenset({DeliveryStatus.PICKED_UP, DeliveryStatus.DELIVERED})


class LifecycleCoordinator:
    """
    Delivery state machine.

    Every change writes the delivery and its package in one transaction,
    each guarded by a compare-and-set on the status it expects, so two
    racing requests can never both apply.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repository = DeliveryRepository(db)
        self.packages = PackageRepository(db)
        self.couriers = CourierDirectory(db)

    def get(self, delivery_id: int) -> Delivery:
        delivery = self.repository.get(delivery_id)
        if not delivery:
            raise DeliveryNotFound(delivery_id)
        return delivery

    def history(self, user_id: int) -> List[Delivery]:
        if not self.packages.get_user(user_id):
            raise UserNotFound(user_id)
        return self.repository.history_for_user(user_id)

    async def assign(self, package_id: int, courier_id: int) -> Delivery:
        """
        Bind a pending package to an available courier.

        The package's current pickup/dropoff addresses are copied onto the
        delivery. Losing a race for the same package raises
        PackageNotAvailable and writes nothing.
        """
        courier = self.couriers.get(courier_id)
        if not courier.availability:
            raise CourierUnavailable(courier_id)
        if not courier.has_route:
            raise RouteNotSet(courier_id)

        package = self.packages.get(package_id)
        if not package:
            raise PackageNotFound(package_id)
        if package.user_id == courier.user_id:
            raise OwnPackage(package_id, courier_id)
        if package.status != PackageStatus.PENDING.value:
            raise PackageNotAvailable(package_id, package.status)

        try:
            with transaction(self.db):
                claimed = self.packages.compare_and_set_status(
                    package_id, PackageStatus.PENDING.value, PackageStatus.ASSIGNED.value
                )
                if not claimed:
                    raise PackageNotAvailable(package_id, self.packages.current_status(package_id))

                delivery = self.repository.create(
                    package_id=package_id,
                    courier_id=courier_id,
                    pickup_address_id=package.pickup_address_id,
                    dropoff_address_id=package.dropoff_address_id,
                    assigned_at=datetime.now()
                )
        except IntegrityError:
            # A live delivery for this package was inserted concurrently
            logger.warning(f"Package {package_id} claimed concurrently, courier {courier_id} lost")
            raise PackageNotAvailable(package_id)

        logger.info(f"Package {package_id} assigned to courier {courier_id} as delivery {delivery.id}")
        return delivery

    async def advance(
        self,
        delivery_id: int,
        target_status: Union[DeliveryStatus, str],
        timestamp: Optional[datetime] = None
    ) -> Delivery:
        """
        Move a delivery forward: assigned -> picked_up -> delivered.

        `timestamp` becomes pickup_time or delivery_time and defaults to now.
        Any other target, including cancelled, raises InvalidTransition.
        """
        delivery = self.get(delivery_id)
        target = self._parse_status(delivery, target_status)
        if target not in ADVANCE_TARGETS:
            raise InvalidTransition(delivery_id, delivery.status, target.value)
        return self._transition(delivery, target, timestamp)

    async def cancel(self, delivery_id: int) -> Delivery:
        """
        Cancel a delivery that is assigned or picked up.

        The delivery row is kept with status cancelled and the package
        goes back to pending, ready to be matched again.
        """
        delivery = self.get(delivery_id)
        return self._transition(delivery, DeliveryStatus.CANCELLED, None)

    def _transition(self, delivery: Delivery, target: DeliveryStatus, timestamp: Optional[datetime]) -> Delivery:
        delivery_id = delivery.id
        package_id = delivery.package_id
        current = DeliveryStatus(delivery.status)

        if target not in DELIVERY_TRANSITIONS[current]:
            raise InvalidTransition(delivery_id, current.value, target.value)

        stamps = {TIMESTAMP_COLUMN[target]: timestamp or datetime.now()}
        expected_package = PACKAGE_STATUS_FOR[current].value
        new_package = PACKAGE_STATUS_FOR[target].value

        with transaction(self.db):
            moved = self.repository.compare_and_set_status(delivery_id, current.value, target.value, **stamps)
            if not moved:
                actual = self.repository.current_status(delivery_id)
                if actual is None:
                    raise DeliveryNotFound(delivery_id)
                raise InvalidTransition(delivery_id, actual, target.value)

            if not self.packages.compare_and_set_status(package_id, expected_package, new_package):
                raise self._consistency_error(delivery_id, package_id, expected_package)

        logger.info(f"Delivery {delivery_id}: {current.value} -> {target.value} (package {package_id} {new_package})")
        return delivery

    def _consistency_error(self, delivery_id: int, package_id: int, expected: str) -> ConsistencyError:
        actual = self.packages.current_status(package_id)
        if actual is None:
            error = PackageLinkMissing(delivery_id, package_id)
        else:
            error = PackageStatusDrift(package_id, expected, actual)
        logger.critical(f"Delivery {delivery_id} left unchanged: {error}")
        return error

    @staticmethod
    def _parse_status(delivery: Delivery, value: Union[DeliveryStatus, str]) -> DeliveryStatus:
        try:
            return DeliveryStatus(value)
        except ValueError:
            raise InvalidTransition(delivery.id, delivery.status, str(value))
