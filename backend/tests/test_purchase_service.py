from decimal import Decimal

import pytest
from sqlalchemy import UniqueConstraint, event

from checkout.models.enums import PurchaseStatus, PurchaseType
from checkout.models.utils.unique_number import UniqueNumberOnConflict
from checkout.services.order_numbers.allocator import AllocatorConfig, OrderNumberAllocator
from checkout.services.order_numbers.memory import InMemoryOrderNumberCounter
from checkout.services.purchases.exceptions import InvalidOrderNumber, OrderNumberConflict, PurchaseNotFound
from checkout.services.purchases.purchase_service import PurchaseService, coerce_order_number
from tests.fakes import BrokenQueryStore, FailingStore, ScriptedSource

PURCHASE = {
    "customer_name": "Jane Trader",
    "customer_email": "jane@example.com",
    "total_price": Decimal("199.99"),
}


@pytest.mark.asyncio
async def test_create_purchase_allocates_from_floor(session):
    service = PurchaseService(session)

    first = await service.create_purchase(**PURCHASE)
    second = await service.create_purchase(**PURCHASE)

    assert first.order_number == 100000
    assert second.order_number == 100001
    assert first.id != second.id
    assert first.status == PurchaseStatus.PENDING
    assert first.purchase_type == PurchaseType.ORIGINAL_ORDER


@pytest.mark.asyncio
async def test_create_purchase_persists_fields(session):
    service = PurchaseService(session)

    created = await service.create_purchase(
        **PURCHASE,
        purchase_type=PurchaseType.RESET_ORDER,
        status=PurchaseStatus.COMPLETED,
        program_name="2-Step Challenge",
        currency="EUR",
    )
    fetched = await service.get_purchase(created.order_number)

    assert fetched.id == created.id
    assert fetched.purchase_type == PurchaseType.RESET_ORDER
    assert fetched.status == PurchaseStatus.COMPLETED
    assert fetched.program_name == "2-Step Challenge"
    assert fetched.currency == "EUR"
    assert fetched.total_price == Decimal("199.99")


@pytest.mark.asyncio
async def test_explicit_order_number_is_coerced(session):
    service = PurchaseService(session)

    purchase = await service.create_purchase(**PURCHASE, order_number="100777")

    assert purchase.order_number == 100777


@pytest.mark.asyncio
async def test_allocation_continues_after_explicit_number(session):
    service = PurchaseService(session)
    await service.create_purchase(**PURCHASE, order_number=100777)

    purchase = await service.create_purchase(**PURCHASE)

    assert purchase.order_number == 100778


@pytest.mark.asyncio
async def test_explicit_duplicate_is_not_retried(session):
    source = ScriptedSource([])
    service = PurchaseService(session, source)
    await service.create_purchase(**PURCHASE, order_number=100500)

    with pytest.raises(OrderNumberConflict) as exc_info:
        await service.create_purchase(**PURCHASE, order_number=100500)

    assert exc_info.value.order_number == 100500
    assert exc_info.value.attempts == 1
    assert source.calls == 0


@pytest.mark.asyncio
async def test_session_usable_after_conflict(session):
    service = PurchaseService(session)
    await service.create_purchase(**PURCHASE, order_number=100000)

    with pytest.raises(OrderNumberConflict):
        await service.create_purchase(**PURCHASE, order_number=100000)

    purchase = await service.create_purchase(**PURCHASE)
    assert purchase.order_number == 100001


@pytest.mark.asyncio
async def test_insert_conflict_retries_with_fresh_number(session):
    await PurchaseService(session).create_purchase(**PURCHASE, order_number=100000)
    source = ScriptedSource([100000, 100000, 100001])
    service = PurchaseService(session, source)

    purchase = await service.create_purchase(**PURCHASE)

    assert purchase.order_number == 100001
    assert source.calls == 3


@pytest.mark.asyncio
async def test_insert_conflict_exhausts_attempts(session):
    await PurchaseService(session).create_purchase(**PURCHASE, order_number=100000)
    source = ScriptedSource([100000] * 3)
    service = PurchaseService(session, source, max_insert_attempts=3)

    with pytest.raises(OrderNumberConflict) as exc_info:
        await service.create_purchase(**PURCHASE)

    assert exc_info.value.attempts == 3
    assert exc_info.value.order_number == 100000
    assert source.calls == 3


@pytest.mark.asyncio
async def test_in_memory_counter_as_injected_source(session):
    service = PurchaseService(session, InMemoryOrderNumberCounter(start=499))

    assert (await service.create_purchase(**PURCHASE)).order_number == 500
    assert (await service.create_purchase(**PURCHASE)).order_number == 501


@pytest.mark.asyncio
async def test_get_purchase_not_found(session):
    service = PurchaseService(session)

    with pytest.raises(PurchaseNotFound):
        await service.get_purchase(123456)


@pytest.mark.parametrize("value", ["abc", "", 0, -5, True, "12.5"])
def test_coerce_order_number_rejects_invalid(value):
    with pytest.raises(InvalidOrderNumber):
        coerce_order_number(value)


@pytest.mark.asyncio
async def test_invalid_explicit_number_raises_before_insert(session):
    service = PurchaseService(session)

    with pytest.raises(InvalidOrderNumber):
        await service.create_purchase(**PURCHASE, order_number="not-a-number")


def test_unnamed_constraint_rejected():
    with pytest.raises(ValueError):
        UniqueNumberOnConflict(
            session=None,  # type: ignore[arg-type]
            next_value=InMemoryOrderNumberCounter().allocate,
            constraint=UniqueConstraint("order_number"),
        )


@pytest.mark.asyncio
async def test_store_failure_still_creates_purchase(session, session_maker, sleep_recorder, fixed_clock):
    allocator = OrderNumberAllocator(
        FailingStore(ConnectionError("database unreachable")),
        AllocatorConfig(),
        sleep=sleep_recorder,
        clock=fixed_clock,
    )
    service = PurchaseService(session, allocator)

    purchase = await service.create_purchase(**PURCHASE)

    assert purchase.order_number == 9_123_500
    async with session_maker() as other:
        stored = await PurchaseService(other).get_purchase(9_123_500)
    assert stored.id == purchase.id


@pytest.mark.asyncio
async def test_failed_allocator_query_does_not_poison_insert(engine, session, session_maker, fixed_clock):
    statements: list[str] = []

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    allocator = OrderNumberAllocator(BrokenQueryStore(session), AllocatorConfig(), clock=fixed_clock)
    service = PurchaseService(session, allocator)

    purchase = await service.create_purchase(**PURCHASE)

    assert purchase.order_number == 9_123_500
    assert any(s.startswith("ROLLBACK TO SAVEPOINT") for s in statements)
    async with session_maker() as other:
        stored = await PurchaseService(other).get_purchase(9_123_500)
    assert stored.customer_email == "jane@example.com"
