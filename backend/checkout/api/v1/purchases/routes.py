"""Purchase API endpoints."""

import structlog
from fastapi import APIRouter, HTTPException, status

from checkout.api.v1.purchases.dependencies import PurchaseServiceDep
from checkout.api.v1.purchases.schemas import PurchaseCreateRequest, PurchaseResponse
from checkout.services.purchases.exceptions import InvalidOrderNumber, OrderNumberConflict, PurchaseNotFound

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["purchases"])


@router.post(
    "/purchases",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createPurchase",
)
async def create_purchase(
    body: PurchaseCreateRequest,
    service: PurchaseServiceDep,
) -> PurchaseResponse:
    """Record a purchase and assign it an order number."""
    try:
        purchase = await service.create_purchase(**body.model_dump())
    except OrderNumberConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidOrderNumber as e:
        raise HTTPException(status_code=422, detail=str(e))
    return PurchaseResponse.from_model(purchase)


@router.get("/purchases/{order_number}", response_model=PurchaseResponse, operation_id="getPurchase")
async def get_purchase(
    order_number: int,
    service: PurchaseServiceDep,
) -> PurchaseResponse:
    """Get a single purchase by its order number."""
    try:
        purchase = await service.get_purchase(order_number)
        return PurchaseResponse.from_model(purchase)
    except PurchaseNotFound:
        raise HTTPException(status_code=404, detail="Purchase not found")
