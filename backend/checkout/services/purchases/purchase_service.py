"""Purchase record service.

Creates purchase rows and gives each one an order number before it is
persisted. Payment handling lives elsewhere; this service only records.
"""

from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from checkout.config import settings
from checkout.models.enums import PurchaseStatus, PurchaseType
from checkout.models.purchase import ORDER_NUMBER_CONSTRAINT, Purchase
from checkout.models.utils.unique_number import ConflictRetriesExhausted, UniqueNumberOnConflict
from checkout.services.order_numbers.allocator import (
    OrderNumberAllocator,
    OrderNumberSource,
    is_degraded_order_number,
)
from checkout.services.order_numbers.store import SqlPurchaseNumberStore
from checkout.services.purchases.exceptions import InvalidOrderNumber, OrderNumberConflict, PurchaseNotFound

logger = structlog.get_logger(__name__)


def coerce_order_number(value: int | str) -> int:
    """Convert a caller-supplied order number to a positive int."""
    if isinstance(value, bool):
        raise InvalidOrderNumber(f"Invalid order number: {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidOrderNumber(f"Invalid order number: {value!r}") from e
    if number <= 0:
        raise InvalidOrderNumber(f"Order number must be positive, got {number}")
    return number


class PurchaseService:
    """Service for purchase record operations."""

    def __init__(
        self,
        session: AsyncSession,
        order_numbers: OrderNumberSource | None = None,
        *,
        max_insert_attempts: int | None = None,
    ):
        self.session = session
        self.order_numbers = order_numbers or OrderNumberAllocator(SqlPurchaseNumberStore(session))
        self.max_insert_attempts = max_insert_attempts or settings.purchase_insert_max_attempts

    async def create_purchase(
        self,
        *,
        customer_name: str,
        customer_email: str,
        total_price: Decimal,
        purchase_type: PurchaseType = PurchaseType.ORIGINAL_ORDER,
        status: PurchaseStatus = PurchaseStatus.PENDING,
        program_name: str | None = None,
        currency: str = "USD",
        order_number: int | str | None = None,
    ) -> Purchase:
        """Insert a purchase, allocating its order number unless one is given.

        An allocated number that collides at insert time is replaced with a
        fresh one. A caller-supplied number is tried once.

        Raises:
            InvalidOrderNumber: supplied order number is not a positive integer
            OrderNumberConflict: no free order number could be inserted
        """
        if order_number is not None:
            requested = coerce_order_number(order_number)

            async def next_value() -> int:
                return requested

            max_retries = 1
        else:
            next_value = self.order_numbers.allocate
            max_retries = self.max_insert_attempts

        retry = UniqueNumberOnConflict(
            session=self.session,
            next_value=next_value,
            constraint=ORDER_NUMBER_CONSTRAINT,
            max_retries=max_retries,
        )
        try:
            async for attempt in retry:
                async with attempt:
                    purchase = Purchase(
                        order_number=attempt.value,
                        purchase_type=purchase_type,
                        status=status,
                        customer_name=customer_name,
                        customer_email=customer_email,
                        program_name=program_name,
                        currency=currency,
                        total_price=total_price,
                    )
                    self.session.add(purchase)
                    await self.session.flush()
        except ConflictRetriesExhausted as e:
            logger.error(
                "Could not insert purchase with a unique order number",
                attempts=e.attempts,
                order_number=e.last_value,
            )
            raise OrderNumberConflict(e.last_value, e.attempts) from e

        logger.info(
            "Created purchase",
            purchase_id=purchase.id,
            order_number=purchase.order_number,
            degraded=is_degraded_order_number(purchase.order_number),
            attempts=retry.current_attempt,
        )
        return purchase

    async def get_purchase(self, order_number: int) -> Purchase:
        """Get purchase by order number."""
        statement = select(Purchase).where(Purchase.order_number == order_number)
        result = await self.session.execute(statement)
        purchase = result.scalars().first()
        if not purchase:
            raise PurchaseNotFound()
        return purchase
