"""Incremental order number allocation without a database sequence.

The allocator reads the highest existing order number, proposes the next one
and verifies nobody holds it yet. Concurrent callers racing for the same value
are spread apart by adding the attempt index to the candidate, and re-read
the store after a short, linearly growing pause.

Nothing here is locked or transactional. Two callers can still both pass the
existence check before either inserts; the unique constraint on
``purchases.order_number`` turns that into an insert-time error which
PurchaseService retries.

allocate() never raises (other than on cancellation). When retries run out
or the store fails, it falls back to a *degraded* number in the
9,000,000-9,999,999 range derived from the wall clock. A jump into that
range in production data means the allocator degraded, not that orders
were skipped.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_incrementing

from checkout.config import Settings, settings
from checkout.services.order_numbers.store import PurchaseNumberStore

logger = structlog.get_logger(__name__)


class OrderNumberSource(Protocol):
    """Anything that can hand out an order number for a new purchase."""

    async def allocate(self) -> int: ...


class OrderNumberTaken(Exception):
    """Candidate order number is already held by another purchase."""

    def __init__(self, candidate: int):
        self.candidate = candidate
        super().__init__(f"Order number {candidate} already exists")


@dataclass(frozen=True)
class AllocatorConfig:
    """Tuning for OrderNumberAllocator."""

    floor: int = 100_000
    max_attempts: int = 10
    retry_base_delay: float = 0.01  # seconds; attempt N waits N * base
    scan_limit: int = 10
    degraded_base: int = 9_000_000
    degraded_modulus: int = 1_000_000

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "AllocatorConfig":
        s = source or settings
        return cls(
            floor=s.order_number_floor,
            max_attempts=s.order_number_max_attempts,
            retry_base_delay=s.order_number_retry_base_delay,
            scan_limit=s.order_number_scan_limit,
            degraded_base=s.order_number_degraded_base,
            degraded_modulus=s.order_number_degraded_modulus,
        )


def degraded_order_number(now_ms: int, config: AllocatorConfig | None = None) -> int:
    """Clock-derived fallback number, e.g. 9_000_000 + (now_ms % 1_000_000)."""
    cfg = config or AllocatorConfig.from_settings()
    return cfg.degraded_base + (now_ms % cfg.degraded_modulus)


def is_degraded_order_number(value: int, config: AllocatorConfig | None = None) -> bool:
    """Return True if `value` lies in the degraded fallback range."""
    cfg = config or AllocatorConfig.from_settings()
    return cfg.degraded_base <= value < cfg.degraded_base + cfg.degraded_modulus


class OrderNumberAllocator:
    """Durable order number allocator over a PurchaseNumberStore.

    Usage:
        allocator = OrderNumberAllocator(SqlPurchaseNumberStore(session))
        purchase.order_number = await allocator.allocate()
    """

    def __init__(
        self,
        store: PurchaseNumberStore,
        config: AllocatorConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.config = config or AllocatorConfig.from_settings()
        self._sleep = sleep
        self._clock = clock

    async def allocate(self) -> int:
        """Return the next free order number, or a degraded one if that fails."""
        try:
            return await self._allocate_incremental()
        except OrderNumberTaken as exc:
            order_number = self._degraded()
            logger.warning(
                "Could not allocate incremental order number, using degraded value",
                reason="retries_exhausted",
                attempts=self.config.max_attempts,
                last_candidate=exc.candidate,
                order_number=order_number,
            )
            return order_number
        except Exception as exc:
            order_number = self._degraded()
            logger.warning(
                "Order number allocation failed, using degraded value",
                reason="store_error",
                error=str(exc),
                order_number=order_number,
                exc_info=True,
            )
            return order_number

    async def _allocate_incremental(self) -> int:
        cfg = self.config
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(OrderNumberTaken),
            stop=stop_after_attempt(cfg.max_attempts),
            wait=wait_incrementing(start=cfg.retry_base_delay, increment=cfg.retry_base_delay),
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                index = attempt.retry_state.attempt_number - 1
                candidate = await self._candidate(index)
                if await self.store.order_number_exists(candidate):
                    logger.info("Order number already exists, retrying", order_number=candidate, attempt=index + 1)
                    raise OrderNumberTaken(candidate)
                logger.info("Allocated order number", order_number=candidate, attempt=index + 1)
                return candidate
        raise AssertionError("unreachable: tenacity either returns or reraises")

    async def _candidate(self, index: int) -> int:
        cfg = self.config
        highest = cfg.floor - 1
        for value in await self.store.highest_order_numbers(cfg.scan_limit):
            # bool is an int subclass; skip it along with missing values
            if isinstance(value, int) and not isinstance(value, bool) and value > highest:
                highest = value

        candidate = highest + 1 + index
        if is_degraded_order_number(candidate, cfg):
            logger.warning("Order number sequence is inside the degraded range", order_number=candidate)
        return candidate

    def _degraded(self) -> int:
        return degraded_order_number(int(self._clock() * 1000), self.config)
