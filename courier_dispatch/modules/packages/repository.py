# courier_dispatch/modules/packages/repository.py
from sqlalchemy.orm import Session
from sqlalchemy import and_, delete, desc, update
from typing import List, Optional
import logging

from courier_dispatch.shared.database.models import Delivery, DeliveryStatus, Package, PackageStatus, User

logger = logging.getLogger(__name__)

class PackageRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, package_id: int) -> Optional[Package]:
        return self.db.query(Package).filter(Package.id == package_id).first()

    def current_status(self, package_id: int) -> Optional[str]:
        """Status as stored right now, bypassing the identity map"""
        return self.db.query(Package.status).filter(Package.id == package_id).scalar()

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def list(self, user_id: Optional[int] = None, status: Optional[str] = None) -> List[Package]:
        query = self.db.query(Package)
        if user_id is not None:
            query = query.filter(Package.user_id == user_id)
        if status is not None:
            query = query.filter(Package.status == status)
        return query.order_by(desc(Package.created_at), desc(Package.id)).all()

    def pending_not_owned_by(self, user_id: int) -> List[Package]:
        return self.db.query(Package).filter(
            and_(
                Package.status == PackageStatus.PENDING.value,
                Package.user_id != user_id
            )
        ).all()

    def create(self, **values) -> Package:
        package = Package(status=PackageStatus.PENDING.value, **values)
        self.db.add(package)
        self.db.flush()
        return package

    def compare_and_set_status(self, package_id: int, expected: str, new: str) -> bool:
        """
        Move a package from `expected` to `new` in a single UPDATE.

        Returns False when the row is missing or no longer in `expected`,
        which is how concurrent claims lose.
        """
        result = self.db.execute(
            update(Package)
            .where(and_(Package.id == package_id, Package.status == expected))
            .values(status=new)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        # Reload status on the next access instead of trusting the identity map
        package = self.db.get(Package, package_id)
        self.db.expire(package, ["status"])
        return True

    def update_if_pending(self, package_id: int, **values) -> bool:
        """Apply `values` only while the package is still pending; False once it has been claimed"""
        result = self.db.execute(
            update(Package)
            .where(and_(Package.id == package_id, Package.status == PackageStatus.PENDING.value))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        self.db.expire(self.db.get(Package, package_id))
        return True

    def has_live_delivery(self, package_id: int) -> bool:
        return self.db.query(Delivery.id).filter(
            and_(
                Delivery.package_id == package_id,
                Delivery.status != DeliveryStatus.CANCELLED.value
            )
        ).first() is not None

    def delete_if_pending(self, package_id: int) -> bool:
        """
        Delete a pending package together with its cancelled delivery attempts.

        Returns False when the package is missing or no longer pending; the
        caller rolls back so the cancelled attempts are kept in that case.
        """
        self.db.execute(
            delete(Delivery)
            .where(and_(
                Delivery.package_id == package_id,
                Delivery.status == DeliveryStatus.CANCELLED.value
            ))
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(
            delete(Package)
            .where(and_(Package.id == package_id, Package.status == PackageStatus.PENDING.value))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
