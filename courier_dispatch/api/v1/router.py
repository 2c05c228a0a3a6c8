# courier_dispatch/api/v1/router.py
from fastapi import APIRouter
from courier_dispatch.modules.addresses.router import router as addresses_router
from courier_dispatch.modules.couriers.router import router as couriers_router
from courier_dispatch.modules.matching.router import router as matching_router
from courier_dispatch.modules.packages.router import router as packages_router
from courier_dispatch.modules.deliveries.router import router as deliveries_router
from courier_dispatch.modules.tracking.router import router as tracking_router

# Main v1 router
api_router = APIRouter()

api_router.include_router(
    addresses_router,
    prefix="/addresses",
    tags=["Addresses"]
)

api_router.include_router(
    couriers_router,
    prefix="/couriers",
    tags=["Couriers"]
)

# POST /packages/search
api_router.include_router(
    matching_router,
    prefix="/packages",
    tags=["Matching"]
)

api_router.include_router(
    packages_router,
    prefix="/packages",
    tags=["Packages"]
)

api_router.include_router(
    deliveries_router,
    prefix="/deliveries",
    tags=["Deliveries"]
)

api_router.include_router(
    tracking_router,
    prefix="/tracking",
    tags=["Tracking"]
)

@api_router.get("/")
async def api_root():
    """API v1 index"""
    return {
        "message": "Courier Dispatch API v1",
        "status": "active",
        "docs": "/docs",
        "available_endpoints": {
            "addresses": "/api/v1/addresses",
            "couriers": "/api/v1/couriers",
            "packages": "/api/v1/packages",
            "deliveries": "/api/v1/deliveries",
            "tracking": "/api/v1/tracking"
        }
    }
