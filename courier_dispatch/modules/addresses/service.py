# courier_dispatch/modules/addresses/service.py
from typing import Dict, List, Optional, Sequence, Tuple
from sqlalchemy.orm import Session
import logging

from courier_dispatch.core.exceptions import AddressNotFound
from courier_dispatch.shared.database.models import Address, PostalCode
from courier_dispatch.shared.schemas.common import AddressFields, Coordinate
from courier_dispatch.shared.services.geocoder import Geocoder
from .repository import AddressRepository

logger = logging.getLogger(__name__)

UNKNOWN_LOCALITY = "Unknown"

Identity = Tuple[str, str, str, str]


class AddressRegistry:
    """
    Deduplicated address store with a geocode-once coordinate cache.

    The registry flushes but never commits: callers wrap it in their own
    unit of work. All geocoder calls for a request are made before the
    first row is written.
    """

    def __init__(self, db: Session, geocoder: Geocoder):
        self.db = db
        self.geocoder = geocoder
        self.repository = AddressRepository(db)

    def get(self, address_id: int) -> Address:
        address = self.repository.get(address_id)
        if not address:
            raise AddressNotFound(address_id)
        return address

    def ensure_postal_code(self, code: str, city: Optional[str] = None, country: Optional[str] = None) -> PostalCode:
        """Get or create; an existing postal code keeps its city and country"""
        return self.repository.get_or_create_postal_code(
            code, city or UNKNOWN_LOCALITY, country or UNKNOWN_LOCALITY
        )

    async def resolve(self, fields: AddressFields) -> Address:
        addresses = await self.resolve_all(fields)
        return addresses[0]

    async def resolve_all(self, *all_fields: AddressFields) -> List[Address]:
        """
        Resolve several addresses in one go, returned in input order.

        Raises GeocodingFailed before anything is written if any of them
        cannot be geocoded.
        """
        coordinates = await self.geocode_all(*all_fields)
        return self.store_all(all_fields, coordinates)

    async def geocode_all(self, *all_fields: AddressFields) -> Dict[Identity, Coordinate]:
        """Geocode every address not yet known with coordinates; reads only, no writes"""
        coordinates: Dict[Identity, Coordinate] = {}
        for fields in all_fields:
            identity = fields.identity
            if identity in coordinates:
                continue
            existing = self.repository.find_by_identity(identity)
            if existing and existing.has_coordinates:
                logger.debug(f"Address cache hit for {identity} (id {existing.id})")
                continue
            coordinates[identity] = await self.geocoder.geocode(self._with_locality(fields))
        return coordinates

    def store_all(self, all_fields: Sequence[AddressFields], coordinates: Dict[Identity, Coordinate]) -> List[Address]:
        """Row writes for addresses already geocoded by geocode_all; caller commits"""
        resolved = []
        for fields in all_fields:
            identity = fields.identity
            self.ensure_postal_code(fields.postal_code, fields.city, fields.country)
            address = self.repository.get_or_create(identity)
            coordinate = coordinates.get(identity)
            if coordinate and self.repository.set_coordinates(address, coordinate.lat, coordinate.lng):
                logger.info(f"Geocoded address {address.id}: ({coordinate.lat}, {coordinate.lng})")
            resolved.append(address)
        return resolved

    async def ensure_coordinates(self, address: Address) -> Address:
        """Geocode a stored address that has no coordinates yet"""
        return self.store_coordinates(address, await self.geocode_stored(address))

    async def geocode_stored(self, address: Address) -> Optional[Coordinate]:
        """Coordinate for a stored address lacking one; None when it already has them"""
        if address.has_coordinates:
            return None

        postal_code = address.postal_code_details or self.repository.get_postal_code(address.postal_code)
        fields = AddressFields(
            street_name=address.street_name,
            house_number=address.house_number,
            extra_info=address.extra_info or None,
            postal_code=address.postal_code,
            city=self._known(postal_code.city) if postal_code else None,
            country=self._known(postal_code.country) if postal_code else None,
        )
        return await self.geocoder.geocode(fields)

    def store_coordinates(self, address: Address, coordinate: Optional[Coordinate]) -> Address:
        if coordinate and self.repository.set_coordinates(address, coordinate.lat, coordinate.lng):
            logger.info(f"Geocoded stored address {address.id}: ({coordinate.lat}, {coordinate.lng})")
        return address

    def _with_locality(self, fields: AddressFields) -> AddressFields:
        """Borrow city/country from a stored postal code when the request omits them"""
        if fields.city and fields.country:
            return fields
        postal_code = self.repository.get_postal_code(fields.postal_code)
        if not postal_code:
            return fields
        return fields.model_copy(update={
            "city": fields.city or self._known(postal_code.city),
            "country": fields.country or self._known(postal_code.country),
        })

    @staticmethod
    def _known(value: Optional[str]) -> Optional[str]:
        return None if value == UNKNOWN_LOCALITY else value
