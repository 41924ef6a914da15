"""Retry an insert when its externally allocated number hits a unique constraint."""

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import structlog
from sqlalchemy import UniqueConstraint
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger(__name__)


class ConflictRetriesExhausted(RuntimeError):
    """Every attempt collided with the unique constraint."""

    def __init__(self, constraint_name: str, attempts: int, last_value: int | None):
        self.constraint_name = constraint_name
        self.attempts = attempts
        self.last_value = last_value
        super().__init__(
            f"Failed to insert unique value after {attempts} attempts "
            f"(constraint: {constraint_name}, last value: {last_value})"
        )


class UniqueNumberOnConflict:
    """Async iterator with rollback-based retry on unique constraint conflict.

    Each iteration asks `next_value` for a fresh number. The body adds the row
    and flushes; a clean exit commits, a conflict on `constraint` rolls the
    session back and moves to the next attempt. Any other error rolls back and
    propagates.

    The whole session transaction is the unit of retry, so the session must
    not carry unrelated pending work.

    Usage:
        async for attempt in UniqueNumberOnConflict(
            session=self.session,
            next_value=allocator.allocate,
            constraint=ORDER_NUMBER_CONSTRAINT,
        ):
            async with attempt:
                purchase = Purchase(order_number=attempt.value, ...)
                session.add(purchase)
                await session.flush()
    """

    def __init__(
        self,
        session: AsyncSession,
        next_value: Callable[[], Awaitable[int]],
        constraint: UniqueConstraint,
        max_retries: int = 5,
    ):
        self.session = session
        self.next_value = next_value
        self.constraint = constraint
        self.max_retries = max_retries
        self.current_attempt = 0
        self._value: int | None = None
        self._success = False

        if not self.constraint.name:
            raise ValueError("UniqueConstraint must have a name for conflict detection.")

    async def __aiter__(self) -> AsyncIterator["UniqueNumberOnConflict"]:
        while self.current_attempt < self.max_retries and not self._success:
            self.current_attempt += 1
            self._value = await self.next_value()
            yield self
        if not self._success:
            raise ConflictRetriesExhausted(str(self.constraint.name), self.max_retries, self._value)

    @property
    def value(self) -> int:
        if self._value is None:
            raise RuntimeError("Value not yet calculated for this attempt.")
        return self._value

    def _conflict_markers(self) -> list[str]:
        # PostgreSQL names the constraint; SQLite lists "table.column" pairs instead
        markers = [f'"{self.constraint.name}"'.lower()]
        table = getattr(self.constraint, "table", None)
        if table is not None:
            columns = ", ".join(f"{table.name}.{column.name}" for column in self.constraint.columns)
            markers.append(f"unique constraint failed: {columns}".lower())
        return markers

    def is_conflict(self, exc: BaseException | None) -> bool:
        """Return True if `exc` is a violation of this iterator's constraint."""
        if not isinstance(exc, IntegrityError):
            return False
        error_str = str(exc).lower()
        return any(marker in error_str for marker in self._conflict_markers())

    async def __aenter__(self) -> "UniqueNumberOnConflict":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        if exc_type is None:
            await self.session.commit()
            self._success = True
            return False
        await self.session.rollback()
        if self.is_conflict(exc_val):
            logger.warning(
                "Unique constraint conflict, retrying",
                attempt=self.current_attempt,
                max_retries=self.max_retries,
                constraint=self.constraint.name,
                value=self._value,
            )
            return True  # Suppress exception, allow retry
        return False
