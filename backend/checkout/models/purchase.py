"""Purchase database model."""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Column, DateTime, Enum, Numeric, UniqueConstraint
from sqlmodel import Field, SQLModel
from ulid import ULID

from checkout.models.enums import PurchaseStatus, PurchaseType
from checkout.models.types import ULIDType


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())


# Authoritative backstop against duplicate order numbers; the allocator only makes them rare
ORDER_NUMBER_CONSTRAINT = UniqueConstraint("order_number", name="uq_purchases_order_number")


class Purchase(SQLModel, table=True):
    """Checkout purchase record."""

    __tablename__ = "purchases"
    __table_args__ = (ORDER_NUMBER_CONSTRAINT,)

    # ULID stored as UUID
    id: str = Field(
        default_factory=_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )

    # Assigned once at creation, never reused
    order_number: int = Field(sa_column=Column(BigInteger, nullable=False))

    purchase_type: PurchaseType = Field(
        default=PurchaseType.ORIGINAL_ORDER,
        sa_column=Column(
            Enum(
                PurchaseType,
                values_callable=lambda e: [x.value for x in e],
                name="purchasetype",
                native_enum=False,
                length=32,
            ),
            nullable=False,
        ),
    )
    status: PurchaseStatus = Field(
        default=PurchaseStatus.PENDING,
        sa_column=Column(
            Enum(
                PurchaseStatus,
                values_callable=lambda e: [x.value for x in e],
                name="purchasestatus",
                native_enum=False,
                length=32,
            ),
            nullable=False,
        ),
    )

    customer_name: str
    customer_email: str
    program_name: str | None = None
    currency: str = "USD"
    total_price: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(12, 2), nullable=False))
    created_at: datetime = Field(default_factory=_utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
