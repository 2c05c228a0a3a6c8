# courier_dispatch/modules/packages/__init__.py
"""
Packages module - delivery requests created by senders

- router.py: create, list, lookup, edit and delete endpoints
- service.py: PackageService
- repository.py: package data access, including the status compare-and-set
- schemas.py: request/response models
"""

from .router import router
from .service import PackageService
from .repository import PackageRepository

__all__ = [
    "router",
    "PackageService",
    "PackageRepository"
]
