# courier_dispatch/shared/database/models.py
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, Text,
    ForeignKey, UniqueConstraint, Index, func, text
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


# =====================================================
# STATUS DOMAINS
# =====================================================

class UserRole(str, Enum):
    USER = "user"
    COURIER = "courier"
    ADMIN = "admin"


class PackageStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"


class DeliveryStatus(str, Enum):
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ActionType(str, Enum):
    SEND = "send"
    RECEIVE = "receive"


class PackageCategory(str, Enum):
    PACKAGE = "package"
    FOOD = "food"
    DRINK = "drink"


class PackageSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


# =====================================================
# IDENTITY (referenced, never written by the engine)
# =====================================================

class User(Base):
    """Authenticated account; couriers and senders both point here"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    courier = relationship("Courier", back_populates="user", uselist=False)
    packages = relationship("Package", back_populates="user")


# =====================================================
# ADDRESSES
# =====================================================

class PostalCode(Base):
    __tablename__ = "postal_codes"

    code = Column(String(20), primary_key=True)
    city = Column(String(50), nullable=False)
    country = Column(String(50), nullable=False)

    addresses = relationship("Address", back_populates="postal_code_details")


class Address(Base):
    """
    Physical address, deduplicated on (street, number, extra info, postal code).

    lat/lng stay NULL until the first successful geocode and are never
    rewritten afterwards.
    """
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    street_name = Column(String(100), nullable=False)
    house_number = Column(String(10), nullable=False)
    extra_info = Column(String(100), nullable=False, default="")
    postal_code = Column(String(20), ForeignKey("postal_codes.code"), nullable=False)
    lat = Column(Float)
    lng = Column(Float)

    postal_code_details = relationship("PostalCode", back_populates="addresses")

    __table_args__ = (
        UniqueConstraint("street_name", "house_number", "extra_info", "postal_code", name="uq_address_identity"),
    )

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


# =====================================================
# COURIERS
# =====================================================

class Courier(Base):
    __tablename__ = "couriers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    start_address_id = Column(Integer, ForeignKey("addresses.id"))
    destination_address_id = Column(Integer, ForeignKey("addresses.id"))
    pickup_radius = Column(Float, nullable=False, default=5.0)
    dropoff_radius = Column(Float, nullable=False, default=5.0)
    availability = Column(Boolean, nullable=False, default=True)

    # Live location
    current_lat = Column(Float)
    current_lng = Column(Float)
    location_updated_at = Column(DateTime)

    user = relationship("User", back_populates="courier")
    start_address = relationship("Address", foreign_keys=[start_address_id])
    destination_address = relationship("Address", foreign_keys=[destination_address_id])
    deliveries = relationship("Delivery", back_populates="courier")

    @property
    def has_route(self) -> bool:
        return self.start_address_id is not None and self.destination_address_id is not None

    @property
    def has_live_location(self) -> bool:
        return self.current_lat is not None and self.current_lng is not None


# =====================================================
# PACKAGES & DELIVERIES
# =====================================================

class Package(Base):
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    description = Column(Text)
    pickup_address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)
    dropoff_address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)
    action_type = Column(String(10), nullable=False, default=ActionType.SEND.value)
    category = Column(String(10), nullable=False, default=PackageCategory.PACKAGE.value)
    size = Column(String(10), nullable=False, default=PackageSize.MEDIUM.value)
    status = Column(String(20), nullable=False, default=PackageStatus.PENDING.value, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    user = relationship("User", back_populates="packages")
    pickup_address = relationship("Address", foreign_keys=[pickup_address_id])
    dropoff_address = relationship("Address", foreign_keys=[dropoff_address_id])
    deliveries = relationship("Delivery", back_populates="package")


class Delivery(Base):
    """
    Binding of a package to a courier.

    pickup/dropoff addresses are copied from the package at assignment time.
    Cancelled rows are kept; only one non-cancelled row may exist per package.
    """
    __tablename__ = "deliveries"

    id = Column(Integer, primary_key=True, index=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False, index=True)
    courier_id = Column(Integer, ForeignKey("couriers.id"), nullable=False, index=True)
    pickup_address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)
    dropoff_address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)
    status = Column(String(20), nullable=False, default=DeliveryStatus.ASSIGNED.value)
    assigned_at = Column(DateTime)
    pickup_time = Column(DateTime)
    delivery_time = Column(DateTime)
    cancelled_at = Column(DateTime)

    package = relationship("Package", back_populates="deliveries")
    courier = relationship("Courier", back_populates="deliveries")
    pickup_address = relationship("Address", foreign_keys=[pickup_address_id])
    dropoff_address = relationship("Address", foreign_keys=[dropoff_address_id])

    __table_args__ = (
        Index(
            "uq_deliveries_live_package",
            "package_id",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )
