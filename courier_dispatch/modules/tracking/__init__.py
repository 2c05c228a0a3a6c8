# courier_dispatch/modules/tracking/__init__.py
"""
Tracking module - current location of a package or delivery

- router.py: tracking endpoints
- service.py: TrackingResolver
- schemas.py: TrackedLocation and responses
"""

from .router import router
from .service import TrackingResolver

__all__ = [
    "router",
    "TrackingResolver"
]
