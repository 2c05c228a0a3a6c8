# courier_dispatch/modules/addresses/repository.py
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import and_
from typing import Optional, Tuple
import logging

from courier_dispatch.shared.database.models import Address, PostalCode

logger = logging.getLogger(__name__)

class AddressRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, address_id: int) -> Optional[Address]:
        return self.db.query(Address).filter(Address.id == address_id).first()

    def find_by_identity(self, identity: Tuple[str, str, str, str]) -> Optional[Address]:
        street_name, house_number, extra_info, postal_code = identity
        return self.db.query(Address).filter(
            and_(
                Address.street_name == street_name,
                Address.house_number == house_number,
                Address.extra_info == extra_info,
                Address.postal_code == postal_code
            )
        ).first()

    def get_postal_code(self, code: str) -> Optional[PostalCode]:
        return self.db.query(PostalCode).filter(PostalCode.code == code).first()

    def get_or_create_postal_code(self, code: str, city: str, country: str) -> PostalCode:
        postal_code = self.get_postal_code(code)
        if postal_code:
            return postal_code

        try:
            with self.db.begin_nested():
                postal_code = PostalCode(code=code, city=city, country=country)
                self.db.add(postal_code)
        except IntegrityError:
            # Inserted concurrently; the other writer's row wins
            logger.info(f"Postal code {code} created concurrently, reusing it")
            postal_code = self.get_postal_code(code)
        return postal_code

    def get_or_create(self, identity: Tuple[str, str, str, str]) -> Address:
        address = self.find_by_identity(identity)
        if address:
            return address

        street_name, house_number, extra_info, postal_code = identity
        try:
            with self.db.begin_nested():
                address = Address(
                    street_name=street_name,
                    house_number=house_number,
                    extra_info=extra_info,
                    postal_code=postal_code
                )
                self.db.add(address)
        except IntegrityError:
            logger.info(f"Address {identity} created concurrently, reusing it")
            address = self.find_by_identity(identity)
        return address

    def set_coordinates(self, address: Address, lat: float, lng: float) -> bool:
        """Fill coordinates once; an address that already has them is left untouched"""
        if address.has_coordinates:
            return False
        address.lat = lat
        address.lng = lng
        self.db.flush()
        return True
