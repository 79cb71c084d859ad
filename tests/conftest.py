"""
Shared test fixtures.

Uses a throw-away SQLite file per test (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  A file rather than ``:memory:`` lets two
sessions hold separate connections, which the concurrency tests rely on.
Redis is an ``AsyncMock``; the published messages are read back from it.
"""

import json
from types import SimpleNamespace
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from cargo_dispatch.config import Settings
from cargo_dispatch.domain.cancellation import DEFAULT_CANCELLATION_FEES
from cargo_dispatch.domain.entities import Stop
from cargo_dispatch.domain.enums import OrderStatus
from cargo_dispatch.infrastructure.database import (
    Base,
    create_engine,
    create_session_factory,
)
from cargo_dispatch.infrastructure.events import OrderEventPublisher
from cargo_dispatch.infrastructure.models import DriverModel, UserModel
from cargo_dispatch.infrastructure.repositories import PricingRepository
from cargo_dispatch.services.drivers import DriverService
from cargo_dispatch.services.lifecycle import OrderLifecycleService
from cargo_dispatch.services.pricing import PricingService

# Istanbul, roughly 6.96 km apart
PICKUP = Stop.of("Kadikoy Pier", 41.0, 29.0)
DESTINATION = Stop.of("Atasehir Warehouse", 41.05, 29.05)

VAN_PRICING = {"base_price": 50.0, "price_per_km": 5.0, "labor_price": 25.0}

# Driving the driver through the lifecycle after the customer confirms
DRIVER_STEPS = (
    OrderStatus.DRIVER_GOING_TO_PICKUP,
    OrderStatus.PICKUP_COMPLETED,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'dispatch.db'}",
        redis_url="redis://localhost:6379/15",
        events_channel="test-order-events",
    )


@pytest_asyncio.fixture
async def engine(test_settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables, yield the engine, then dispose of it."""
    engine = create_engine(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
def redis_mock() -> AsyncMock:
    client = AsyncMock()
    client.publish = AsyncMock(return_value=1)
    return client


@pytest.fixture
def publisher(redis_mock, test_settings) -> OrderEventPublisher:
    return OrderEventPublisher(redis_mock, test_settings.events_channel)


@pytest.fixture
def lifecycle(session_factory, publisher, test_settings) -> OrderLifecycleService:
    return OrderLifecycleService(session_factory, publisher, test_settings)


@pytest.fixture
def driver_service(session_factory, publisher, test_settings) -> DriverService:
    return DriverService(session_factory, publisher, test_settings)


@pytest.fixture
def pricing_service(session_factory, publisher, test_settings) -> PricingService:
    return PricingService(session_factory, publisher, test_settings)


@pytest_asyncio.fixture
async def world(session_factory) -> SimpleNamespace:
    """
    Two customers, two approved drivers, one unapproved driver, the van
    tariff and the default cancellation fee table.
    """
    async with session_factory() as session:
        alice = UserModel(name="Alice", phone_number="+900000000001")
        bob = UserModel(name="Bob", phone_number="+900000000002")
        session.add_all([alice, bob])
        await session.flush()

        drivers = []
        for i, approved in enumerate((True, True, False), start=1):
            user = UserModel(
                name=f"Driver {i}", phone_number=f"+90000000010{i}", user_type="driver"
            )
            session.add(user)
            await session.flush()
            driver = DriverModel(
                user_id=user.id,
                vehicle_type="van",
                is_available=True,
                is_approved=approved,
            )
            session.add(driver)
            await session.flush()
            drivers.append(driver)

        pricing = PricingRepository(session)
        await pricing.upsert_vehicle_pricing("van", **VAN_PRICING)
        for rule in DEFAULT_CANCELLATION_FEES:
            await pricing.upsert_fee_rule(rule)
        await session.commit()

    return SimpleNamespace(
        alice=alice.id,
        bob=bob.id,
        driver=drivers[0],
        other_driver=drivers[1],
        unapproved_driver=drivers[2],
    )


async def load_driver(session_factory, driver_id: int) -> DriverModel:
    async with session_factory() as session:
        return await session.get(DriverModel, driver_id)


def published_events(redis_mock: AsyncMock) -> list[dict]:
    return [json.loads(call.args[1]) for call in redis_mock.publish.await_args_list]


async def deliver(lifecycle: OrderLifecycleService, order_id: int, world) -> None:
    """Walk an order from ``requested`` to ``delivered`` with the first driver."""
    await lifecycle.advance_order_status(order_id, world.driver.user_id, OrderStatus.ACCEPTED)
    await lifecycle.advance_order_status(order_id, world.alice, OrderStatus.CONFIRMED)
    for step in DRIVER_STEPS:
        await lifecycle.advance_order_status(order_id, world.driver.user_id, step)
