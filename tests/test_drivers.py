"""Driver availability, approval and trip rating aggregation."""

import pytest

from cargo_dispatch.domain.enums import OrderStatus, PaymentMethod
from cargo_dispatch.domain.errors import (
    AlreadyRated,
    DriverUnavailable,
    InvalidRating,
    InvalidState,
    NotCompleted,
    NotFound,
    NotOwner,
)
from tests.conftest import DESTINATION, PICKUP, deliver, load_driver, published_events


async def delivered_order(lifecycle, world):
    order = await lifecycle.create_order(
        world.alice, PICKUP, DESTINATION, PaymentMethod.CARD, vehicle_type="van"
    )
    await deliver(lifecycle, order.id, world)
    return order


class TestAvailability:
    @pytest.mark.asyncio
    async def test_go_offline_and_online(self, driver_service, world):
        driver = await driver_service.set_availability(world.driver.user_id, False)
        assert driver.is_available is False
        driver = await driver_service.set_availability(world.driver.user_id, True)
        assert driver.is_available is True

    @pytest.mark.asyncio
    async def test_offline_driver_cannot_accept(self, driver_service, lifecycle, world):
        await driver_service.set_availability(world.driver.user_id, False)
        order = await lifecycle.create_order(world.alice, PICKUP, DESTINATION, "cash")
        with pytest.raises(DriverUnavailable):
            await lifecycle.advance_order_status(order.id, world.driver.user_id, "accepted")

    @pytest.mark.asyncio
    async def test_cannot_go_online_while_bound(
        self, driver_service, lifecycle, world, session_factory
    ):
        order = await lifecycle.create_order(world.alice, PICKUP, DESTINATION, "cash")
        await lifecycle.advance_order_status(order.id, world.driver.user_id, "accepted")

        with pytest.raises(InvalidState):
            await driver_service.set_availability(world.driver.user_id, True)
        driver = await load_driver(session_factory, world.driver.id)
        assert driver.is_available is False
        assert driver.current_order_id == order.id

    @pytest.mark.asyncio
    async def test_unknown_driver(self, driver_service, world):
        with pytest.raises(NotFound):
            await driver_service.set_availability(world.alice, False)


class TestApproval:
    @pytest.mark.asyncio
    async def test_approved_driver_can_accept(self, driver_service, lifecycle, world):
        driver = await driver_service.set_approval(world.unapproved_driver.id, True)
        assert driver.is_approved is True

        order = await lifecycle.create_order(world.alice, PICKUP, DESTINATION, "cash")
        order = await lifecycle.advance_order_status(
            order.id, world.unapproved_driver.user_id, "accepted"
        )
        assert order.driver_id == world.unapproved_driver.id

    @pytest.mark.asyncio
    async def test_suspended_driver_cannot_accept(self, driver_service, lifecycle, world):
        await driver_service.set_approval(world.driver.id, False)
        order = await lifecycle.create_order(world.alice, PICKUP, DESTINATION, "cash")
        with pytest.raises(DriverUnavailable):
            await lifecycle.advance_order_status(order.id, world.driver.user_id, "accepted")

    @pytest.mark.asyncio
    async def test_missing_driver(self, driver_service, world):
        with pytest.raises(NotFound):
            await driver_service.set_approval(999, True)


class TestRateOrder:
    @pytest.mark.asyncio
    async def test_rating_updates_driver_average(
        self, driver_service, lifecycle, world, session_factory, redis_mock
    ):
        order = await delivered_order(lifecycle, world)
        rating = await driver_service.rate_order(order.id, world.alice, 4, "Careful with boxes")

        assert rating.rating == 4
        assert rating.driver_id == world.driver.id
        driver = await load_driver(session_factory, world.driver.id)
        assert driver.rating == 4.0
        event = published_events(redis_mock)[-1]
        assert event["event"] == "order.rated"
        assert event["driver_rating"] == 4.0

    @pytest.mark.asyncio
    async def test_average_over_all_trips(
        self, driver_service, lifecycle, world, session_factory
    ):
        for stars in (5, 4, 3):
            order = await delivered_order(lifecycle, world)
            await driver_service.rate_order(order.id, world.alice, stars)

        driver = await load_driver(session_factory, world.driver.id)
        assert driver.rating == 4.0
        assert driver.total_trips == 3

    @pytest.mark.asyncio
    async def test_paid_order_can_be_rated(self, driver_service, lifecycle, world):
        order = await delivered_order(lifecycle, world)
        await lifecycle.advance_order_status(
            order.id, world.driver.user_id, OrderStatus.PAYMENT_COMPLETED
        )
        rating = await driver_service.rate_order(order.id, world.alice, 5)
        assert rating.order_id == order.id

    @pytest.mark.asyncio
    async def test_second_rating_rejected(
        self, driver_service, lifecycle, world, session_factory
    ):
        order = await delivered_order(lifecycle, world)
        await driver_service.rate_order(order.id, world.alice, 5)
        with pytest.raises(AlreadyRated):
            await driver_service.rate_order(order.id, world.alice, 1)

        driver = await load_driver(session_factory, world.driver.id)
        assert driver.rating == 5.0

    @pytest.mark.asyncio
    async def test_active_order_cannot_be_rated(self, driver_service, lifecycle, world):
        order = await lifecycle.create_order(world.alice, PICKUP, DESTINATION, "cash")
        await lifecycle.advance_order_status(order.id, world.driver.user_id, "accepted")
        with pytest.raises(NotCompleted):
            await driver_service.rate_order(order.id, world.alice, 5)

    @pytest.mark.asyncio
    async def test_cancelled_order_cannot_be_rated(self, driver_service, lifecycle, world):
        order = await lifecycle.create_order(world.alice, PICKUP, DESTINATION, "cash")
        await lifecycle.cancel_order(order.id, world.alice)
        with pytest.raises(NotCompleted):
            await driver_service.rate_order(order.id, world.alice, 5)

    @pytest.mark.asyncio
    async def test_only_the_customer_rates(self, driver_service, lifecycle, world):
        order = await delivered_order(lifecycle, world)
        with pytest.raises(NotOwner):
            await driver_service.rate_order(order.id, world.bob, 5)

    @pytest.mark.asyncio
    async def test_invalid_rating_checked_before_lookup(self, driver_service, world):
        with pytest.raises(InvalidRating):
            await driver_service.rate_order(999, world.alice, 6)

    @pytest.mark.asyncio
    async def test_missing_order(self, driver_service, world):
        with pytest.raises(NotFound):
            await driver_service.rate_order(999, world.alice, 5)
