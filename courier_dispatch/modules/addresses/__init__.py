# courier_dispatch/modules/addresses/__init__.py
"""
Addresses module - deduplicated address store

- router.py: resolve and lookup endpoints
- service.py: AddressRegistry, geocode-once coordinate cache
- repository.py: address and postal code persistence
- schemas.py: request/response models
"""

from .router import router
from .service import AddressRegistry
from .repository import AddressRepository

__all__ = [
    "router",
    "AddressRegistry",
    "AddressRepository"
]
