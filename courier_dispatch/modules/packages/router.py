# courier_dispatch/modules/packages/router.py
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session
from typing import Optional

from courier_dispatch.config.database import get_db
from courier_dispatch.shared.database.models import PackageStatus
from courier_dispatch.shared.services.geocoder import Geocoder, get_geocoder
from .service import PackageService
from courier_dispatch.shared.schemas.common import BaseResponse
from .schemas import PackageCreateRequest, PackageUpdate, PackageResponse, PackageResult, PackageListResponse

router = APIRouter()

@router.post("", response_model=PackageResult, status_code=201)
async def create_package(
    package_data: PackageCreateRequest,
    db: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder)
):
    """
    Create a pending package.

    Pickup and dropoff are resolved (and geocoded on first use); if either
    cannot be geocoded the request fails with 503 and nothing is stored.
    """
    service = PackageService(db, geocoder)
    package = await service.create_package(package_data.user_id, package_data)
    return PackageResult(success=True, message="Package created", package=PackageResponse.model_validate(package))

@router.get("", response_model=PackageListResponse)
async def list_packages(
    user_id: Optional[int] = Query(None, description="Only packages owned by this user"),
    status: Optional[PackageStatus] = Query(None, description="Only packages in this status"),
    db: Session = Depends(get_db)
):
    service = PackageService(db)
    packages = service.list_packages(user_id=user_id, status=status)
    return PackageListResponse(
        success=True,
        packages=[PackageResponse.model_validate(p) for p in packages],
        count=len(packages)
    )

@router.get("/{package_id}", response_model=PackageResult)
async def get_package(
    package_id: int = Path(..., description="Package ID"),
    db: Session = Depends(get_db)
):
    service = PackageService(db)
    return PackageResult(success=True, package=PackageResponse.model_validate(service.get(package_id)))

@router.put("/{package_id}", response_model=PackageResult)
async def update_package(
    changes: PackageUpdate,
    package_id: int = Path(..., description="Package ID"),
    db: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder)
):
    """
    Edit description, size, category or addresses of a pending package.

    Returns 409 once the package has been assigned; the delivery keeps the
    addresses it was assigned with.
    """
    service = PackageService(db, geocoder)
    package = await service.update_package(package_id, changes)
    return PackageResult(success=True, message="Package updated", package=PackageResponse.model_validate(package))

@router.delete("/{package_id}", response_model=BaseResponse)
async def delete_package(
    package_id: int = Path(..., description="Package ID"),
    db: Session = Depends(get_db)
):
    """Delete a pending package; 409 while a delivery is live or after delivery"""
    service = PackageService(db)
    service.delete_package(package_id)
    return BaseResponse(success=True, message=f"Package {package_id} deleted")
