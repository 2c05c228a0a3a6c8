# courier_dispatch/modules/matching/router.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from courier_dispatch.config.database import get_db
from courier_dispatch.modules.couriers.schemas import CourierResponse
from courier_dispatch.modules.packages.schemas import PackageResponse
from courier_dispatch.shared.services.geocoder import Geocoder, get_geocoder
from .service import MatchingEngine
from .schemas import PackageSearchRequest, PackageSearchResponse

router = APIRouter()

@router.post("/search", response_model=PackageSearchResponse)
async def search_packages(
    search: PackageSearchRequest,
    db: Session = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder)
):
    """
    Find pending packages along a courier's route.

    **Matching:**
    - pickup within `pickup_radius` km of the start (or live location)
    - dropoff within `dropoff_radius` km of the destination
    - the courier's own packages are excluded

    **Side effect:** the supplied start/destination become the courier's
    stored route, used by later searches that omit them.
    """
    matcher = MatchingEngine(db, geocoder)
    packages = await matcher.find_candidates(
        search.user_id,
        start=search.start_address,
        destination=search.destination_address,
        pickup_radius=search.pickup_radius,
        dropoff_radius=search.dropoff_radius,
        use_live_location=search.use_live_location
    )
    courier = matcher.directory.get_by_user(search.user_id)

    return PackageSearchResponse(
        success=True,
        message=f"{len(packages)} package(s) match the route",
        courier=CourierResponse.model_validate(courier),
        packages=[PackageResponse.model_validate(p) for p in packages],
        count=len(packages)
    )
