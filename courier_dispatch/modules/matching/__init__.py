# courier_dispatch/modules/matching/__init__.py
"""
Matching module - geo-radius search of pending packages for a courier route

- router.py: POST /packages/search
- service.py: MatchingEngine
- schemas.py: request/response models
"""

from .router import router
from .service import MatchingEngine

__all__ = [
    "router",
    "MatchingEngine"
]
