import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from checkout.api.v1 import health, purchases
from checkout.db import get_session, init_models
from checkout.services.order_numbers.allocator import AllocatorConfig
from tests.fakes import SleepRecorder


@pytest.fixture
def allocator_config() -> AllocatorConfig:
    return AllocatorConfig()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fixed_clock():
    # 1_700_000_123_500 ms -> degraded 9_123_500
    return lambda: 1_700_000_123.5


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest.fixture
def api_app(session_maker) -> FastAPI:
    async def override_get_session():
        async with session_maker() as s:
            yield s

    app = FastAPI()
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(purchases.router, prefix="/api/v1")
    app.dependency_overrides[get_session] = override_get_session
    return app


@pytest_asyncio.fixture
async def client(api_app):
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
