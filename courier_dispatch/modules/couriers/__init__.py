# courier_dispatch/modules/couriers/__init__.py
"""
Couriers module - courier profiles

Tracks each courier's planned route (start/destination address),
acceptance radii, availability flag and live location.

- router.py: onboarding and profile endpoints
- service.py: CourierDirectory
- repository.py: courier data access
- schemas.py: request/response models
"""

from .router import router
from .service import CourierDirectory
from .repository import CourierRepository

__all__ = [
    "router",
    "CourierDirectory",
    "CourierRepository"
]
