# courier_dispatch/modules/deliveries/__init__.py
"""
Deliveries module - delivery lifecycle

Flow:
- assign: pending package -> delivery `assigned`, package `assigned`
- advance: `picked_up` (package `in_transit`), then `delivered`
- cancel: delivery `cancelled` (kept for history), package back to `pending`

Architecture:
- router.py: delivery endpoints
- service.py: LifecycleCoordinator and the transition table
- repository.py: delivery data access with compare-and-set updates
- schemas.py: request/response models
"""

from .router import router
from .service import LifecycleCoordinator, DELIVERY_TRANSITIONS, PACKAGE_STATUS_FOR
from .repository import DeliveryRepository

__all__ = [
    "router",
    "LifecycleCoordinator",
    "DeliveryRepository",
    "DELIVERY_TRANSITIONS",
    "PACKAGE_STATUS_FOR"
]
