# courier_dispatch/modules/deliveries/repository.py
from sqlalchemy.orm import Session
from sqlalchemy import and_, desc, or_, update
from typing import List, Optional
from datetime import datetime
import logging

from courier_dispatch.shared.database.models import Courier, Delivery, DeliveryStatus, Package

logger = logging.getLogger(__name__)

class DeliveryRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, delivery_id: int) -> Optional[Delivery]:
        return self.db.query(Delivery).filter(Delivery.id == delivery_id).first()

    def current_status(self, delivery_id: int) -> Optional[str]:
        """Status as stored right now, bypassing the identity map"""
        return self.db.query(Delivery.status).filter(Delivery.id == delivery_id).scalar()

    def live_for_package(self, package_id: int) -> Optional[Delivery]:
        return self.db.query(Delivery).filter(
            and_(
                Delivery.package_id == package_id,
                Delivery.status != DeliveryStatus.CANCELLED.value
            )
        ).first()

    def create(
        self,
        package_id: int,
        courier_id: int,
        pickup_address_id: int,
        dropoff_address_id: int,
        assigned_at: datetime
    ) -> Delivery:
        delivery = Delivery(
            package_id=package_id,
            courier_id=courier_id,
            pickup_address_id=pickup_address_id,
            dropoff_address_id=dropoff_address_id,
            status=DeliveryStatus.ASSIGNED.value,
            assigned_at=assigned_at
        )
        self.db.add(delivery)
        self.db.flush()
        return delivery

    def compare_and_set_status(self, delivery_id: int, expected: str, new: str, **stamps) -> bool:
        """Move a delivery from `expected` to `new`, also writing any timestamp columns given"""
        result = self.db.execute(
            update(Delivery)
            .where(and_(Delivery.id == delivery_id, Delivery.status == expected))
            .values(status=new, **stamps)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        delivery = self.db.get(Delivery, delivery_id)
        self.db.expire(delivery)
        return True

    def history_for_user(self, user_id: int) -> List[Delivery]:
        """Deliveries the user carried as courier or sent as package owner, newest first"""
        return self.db.query(Delivery).join(
            Courier, Delivery.courier_id == Courier.id
        ).join(
            Package, Delivery.package_id == Package.id
        ).filter(
            or_(Courier.user_id == user_id, Package.user_id == user_id)
        ).order_by(desc(Delivery.assigned_at), desc(Delivery.id)).all()
