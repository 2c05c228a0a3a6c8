# courier_dispatch/modules/couriers/repository.py
from sqlalchemy.orm import Session
from typing import Optional
import logging

from courier_dispatch.shared.database.models import Courier, User

logger = logging.getLogger(__name__)

class CourierRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, courier_id: int) -> Optional[Courier]:
        return self.db.query(Courier).filter(Courier.id == courier_id).first()

    def get_by_user(self, user_id: int) -> Optional[Courier]:
        return self.db.query(Courier).filter(Courier.user_id == user_id).first()

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def create(self, user_id: int, pickup_radius: float, dropoff_radius: float) -> Courier:
        courier = Courier(
            user_id=user_id,
            pickup_radius=pickup_radius,
            dropoff_radius=dropoff_radius,
            availability=True
        )
        self.db.add(courier)
        self.db.flush()
        return courier
