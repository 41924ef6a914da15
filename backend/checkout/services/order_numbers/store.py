"""Read-only queries the order number allocator runs against purchases."""

from collections.abc import Sequence
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from checkout.models.purchase import Purchase


class PurchaseNumberStore(Protocol):
    """Query capability over existing purchase order numbers."""

    async def highest_order_numbers(self, limit: int) -> Sequence[int | None]:
        """Return up to `limit` order numbers that are set, highest first."""
        ...

    async def order_number_exists(self, value: int) -> bool:
        """Return True if a purchase already carries `value`."""
        ...


class SqlPurchaseNumberStore:
    """PurchaseNumberStore backed by the purchases table.

    Queries share the caller's session so the allocator sees the same
    transaction the purchase is inserted in. Each query runs inside a
    savepoint: on PostgreSQL a failed statement aborts the enclosing
    transaction, and rolling back to the savepoint keeps the session usable
    for the insert that follows a degraded allocation.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _execute(self, statement: Any) -> Any:
        async with self.session.begin_nested():
            return await self.session.execute(statement)

    async def highest_order_numbers(self, limit: int) -> Sequence[int | None]:
        statement = (
            select(Purchase.order_number)
            .where(col(Purchase.order_number).is_not(None))
            .order_by(col(Purchase.order_number).desc())
            .limit(limit)
        )
        result = await self._execute(statement)
        return list(result.scalars().all())

    async def order_number_exists(self, value: int) -> bool:
        statement = select(Purchase.id).where(Purchase.order_number == value).limit(1)
        result = await self._execute(statement)
        return result.first() is not None
