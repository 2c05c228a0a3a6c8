"""Pytest configuration: in-memory database, fake geocoder and row factories."""

import os

# Must be set before courier_dispatch.config builds its engine
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from courier_dispatch.config.database import create_database_engine, get_db, init_database
from courier_dispatch.core.exceptions import GeocodingFailed
from courier_dispatch.shared.database.models import (
    Address, Base, Courier, Package, PackageStatus, PostalCode, User, UserRole
)
from courier_dispatch.shared.schemas.common import AddressFields, Coordinate
from courier_dispatch.shared.services.geocoder import get_geocoder

# Street name -> coordinate the fake geocoder knows about
PLACES = {
    "Grand Place": (50.85, 4.35),        # Brussels centre, courier start
    "Rue du Nord": (50.90, 4.35),        # ~5.56 km north of Grand Place
    "Rue Neuve": (50.855, 4.355),        # under 1 km from Grand Place
    "Meir": (51.22, 4.40),               # Antwerp, courier destination
    "Groenplaats": (51.219, 4.401),      # next to Meir
    "Place Saint-Lambert": (50.645, 5.573),  # Liege, far from both ends
}


class FakeGeocoder:
    """Deterministic geocoder keyed on street name; unknown streets fail"""

    def __init__(self, places=None):
        self.places = dict(PLACES if places is None else places)
        self.failing = set()
        self.calls = []

    async def geocode(self, fields: AddressFields) -> Coordinate:
        self.calls.append(fields)
        if fields.street_name in self.failing or fields.street_name not in self.places:
            raise GeocodingFailed(fields.one_line(), "status ZERO_RESULTS")
        lat, lng = self.places[fields.street_name]
        return Coordinate(lat=lat, lng=lng)

    @property
    def call_count(self) -> int:
        return len(self.calls)


def address_fields(street_name: str, house_number: str = "1", postal_code: str = "1000", **extra) -> AddressFields:
    return AddressFields(
        street_name=street_name,
        house_number=house_number,
        postal_code=postal_code,
        city=extra.pop("city", "Brussels"),
        country=extra.pop("country", "Belgium"),
        **extra
    )


class Factory:
    """Inserts committed rows directly, bypassing the services under test"""

    def __init__(self, db):
        self.db = db
        self._users = 0

    def user(self, username: str = None) -> User:
        self._users += 1
        username = username or f"user{self._users}"
        user = User(username=username, email=f"{username}@example.com", role=UserRole.USER.value)
        self.db.add(user)
        self.db.commit()
        return user

    def address(self, street_name: str, house_number: str = "1", postal_code: str = "1000", geocoded: bool = True) -> Address:
        existing = self.db.query(Address).filter(
            Address.street_name == street_name,
            Address.house_number == house_number,
            Address.postal_code == postal_code
        ).first()
        if existing:
            return existing

        if not self.db.query(PostalCode).filter(PostalCode.code == postal_code).first():
            self.db.add(PostalCode(code=postal_code, city="Brussels", country="Belgium"))
        lat, lng = PLACES.get(street_name, (None, None)) if geocoded else (None, None)
        address = Address(
            street_name=street_name,
            house_number=house_number,
            extra_info="",
            postal_code=postal_code,
            lat=lat,
            lng=lng
        )
        self.db.add(address)
        self.db.commit()
        return address

    def courier(self, user: User = None, start: Address = None, destination: Address = None, **fields) -> Courier:
        user = user or self.user()
        courier = Courier(
            user_id=user.id,
            start_address_id=start.id if start else None,
            destination_address_id=destination.id if destination else None,
            pickup_radius=fields.pop("pickup_radius", 5.0),
            dropoff_radius=fields.pop("dropoff_radius", 5.0),
            availability=fields.pop("availability", True),
            **fields
        )
        user.role = UserRole.COURIER.value
        self.db.add(courier)
        self.db.commit()
        return courier

    def routed_courier(self, **fields) -> Courier:
        """Courier riding Grand Place -> Meir"""
        return self.courier(start=self.address("Grand Place"), destination=self.address("Meir"), **fields)

    def package(self, owner: User = None, pickup: Address = None, dropoff: Address = None,
                status: PackageStatus = PackageStatus.PENDING) -> Package:
        owner = owner or self.user()
        package = Package(
            user_id=owner.id,
            description="Box of books",
            pickup_address_id=(pickup or self.address("Rue Neuve", house_number="10")).id,
            dropoff_address_id=(dropoff or self.address("Groenplaats", house_number="20")).id,
            status=status.value
        )
        self.db.add(package)
        self.db.commit()
        return package


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory SQLite database with all tables"""
    engine = create_database_engine("sqlite://")
    init_database(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def client(db, geocoder):
    """TestClient sharing the test session and fake geocoder"""
    from courier_dispatch.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    yield TestClient(app)
    app.dependency_overrides.clear()
