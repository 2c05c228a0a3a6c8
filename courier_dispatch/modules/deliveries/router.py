# courier_dispatch/modules/deliveries/router.py
from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from courier_dispatch.config.database import get_db
from .service import LifecycleCoordinator
from .schemas import DeliveryAssign, DeliveryStatusUpdate, DeliveryResponse, DeliveryResult, DeliveryHistoryResponse

router = APIRouter()

@router.post("", response_model=DeliveryResult, status_code=201)
async def assign_delivery(
    assignment: DeliveryAssign,
    db: Session = Depends(get_db)
):
    """
    Assign a pending package to a courier.

    **Concurrency:**
    - only one courier can claim a package
    - the losing request gets 409 `package_not_available`
    """
    coordinator = LifecycleCoordinator(db)
    delivery = await coordinator.assign(assignment.package_id, assignment.courier_id)
    return DeliveryResult(
        success=True,
        message="Package assigned",
        delivery=DeliveryResponse.model_validate(delivery)
    )

@router.get("/users/{user_id}", response_model=DeliveryHistoryResponse)
async def get_delivery_history(
    user_id: int = Path(..., description="User ID"),
    db: Session = Depends(get_db)
):
    """Deliveries the user carried as courier or sent as owner, newest first"""
    coordinator = LifecycleCoordinator(db)
    deliveries = coordinator.history(user_id)
    return DeliveryHistoryResponse(
        success=True,
        deliveries=[DeliveryResponse.model_validate(d) for d in deliveries],
        count=len(deliveries)
    )

@router.get("/{delivery_id}", response_model=DeliveryResult)
async def get_delivery(
    delivery_id: int = Path(..., description="Delivery ID"),
    db: Session = Depends(get_db)
):
    coordinator = LifecycleCoordinator(db)
    return DeliveryResult(success=True, delivery=DeliveryResponse.model_validate(coordinator.get(delivery_id)))

@router.put("/{delivery_id}/status", response_model=DeliveryResult)
async def update_delivery_status(
    update: DeliveryStatusUpdate,
    delivery_id: int = Path(..., description="Delivery ID"),
    db: Session = Depends(get_db)
):
    """
    Confirm pickup (`picked_up`) or delivery (`delivered`).

    Any other move returns 409 `invalid_transition` and changes nothing.
    """
    coordinator = LifecycleCoordinator(db)
    delivery = await coordinator.advance(delivery_id, update.status, update.timestamp)
    return DeliveryResult(
        success=True,
        message=f"Delivery {update.status}",
        delivery=DeliveryResponse.model_validate(delivery)
    )

@router.delete("/{delivery_id}", response_model=DeliveryResult)
async def cancel_delivery(
    delivery_id: int = Path(..., description="Delivery ID"),
    db: Session = Depends(get_db)
):
    """Cancel an assigned or picked-up delivery; the package returns to pending"""
    coordinator = LifecycleCoordinator(db)
    delivery = await coordinator.cancel(delivery_id)
    return DeliveryResult(
        success=True,
        message="Delivery cancelled",
        delivery=DeliveryResponse.model_validate(delivery)
    )
