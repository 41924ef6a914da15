"""API schemas for purchase endpoints."""

from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_serializer

from checkout.models.enums import PurchaseStatus, PurchaseType
from checkout.models.purchase import Purchase
from checkout.services.order_numbers.allocator import is_degraded_order_number

# =============================================================================
# Request Schemas
# =============================================================================


class PurchaseCreateRequest(BaseModel):
    """Body for creating a purchase record."""

    customer_name: str = Field(min_length=1)
    customer_email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    total_price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    purchase_type: PurchaseType = PurchaseType.ORIGINAL_ORDER
    status: PurchaseStatus = PurchaseStatus.PENDING
    program_name: str | None = None
    currency: str = Field(default="USD", min_length=3, max_length=3)
    # Normally omitted; the server allocates one
    order_number: int | None = Field(default=None, gt=0)


# =============================================================================
# Response Schemas
# =============================================================================


class PurchaseResponse(BaseModel):
    """Purchase response schema."""

    id: str
    order_number: int
    order_number_degraded: bool
    purchase_type: PurchaseType
    status: PurchaseStatus
    customer_name: str
    customer_email: str
    program_name: str | None
    currency: str
    total_price: Decimal
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, dt: datetime) -> str:
        """Serialize datetime as UTC ISO 8601."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC).isoformat()

    @field_serializer("total_price")
    def serialize_total_price(self, value: Decimal) -> str:
        return f"{value:.2f}"

    @classmethod
    def from_model(cls, purchase: Purchase) -> "PurchaseResponse":
        """Create response from Purchase model."""
        return cls(
            id=purchase.id,
            order_number=purchase.order_number,
            order_number_degraded=is_degraded_order_number(purchase.order_number),
            purchase_type=purchase.purchase_type,
            status=purchase.status,
            customer_name=purchase.customer_name,
            customer_email=purchase.customer_email,
            program_name=purchase.program_name,
            currency=purchase.currency,
            total_price=purchase.total_price,
            created_at=purchase.created_at,
        )
