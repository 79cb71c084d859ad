"""
Concurrency safety tests.

Demonstrates:
1. A driver racing onto two orders is bound to exactly one of them.
2. Two drivers racing onto one order: exactly one wins, the loser stays free.
3. Two simultaneous bookings by one customer leave one active order.
4. Two simultaneous ratings of one order record exactly one.
"""

import asyncio

import pytest

from cargo_dispatch.domain.enums import OrderStatus
from cargo_dispatch.domain.errors import (
    ActiveOrderExists,
    AlreadyRated,
    ConflictError,
    DispatchError,
    DriverUnavailable,
    InvalidState,
)
from tests.conftest import DESTINATION, PICKUP, deliver, load_driver


def split_outcomes(results):
    wins = [r for r in results if not isinstance(r, BaseException)]
    losses = [r for r in results if isinstance(r, BaseException)]
    return wins, losses


class TestDriverBinding:
    @pytest.mark.asyncio
    async def test_driver_accepting_two_orders_at_once(
        self, lifecycle, world, session_factory
    ):
        first = await lifecycle.create_order(world.alice, PICKUP, DESTINATION, "cash")
        second = await lifecycle.create_order(world.bob, PICKUP, DESTINATION, "cash")

        results = await asyncio.gather(
            lifecycle.advance_order_status(first.id, world.driver.user_id, "accepted"),
            lifecycle.advance_order_status(second.id, world.driver.user_id, "accepted"),
            return_exceptions=True,
        )
        wins, losses = split_outcomes(results)

        assert len(wins) == 1
        assert len(losses) == 1
        assert isinstance(losses[0], DriverUnavailable)

        driver = await load_driver(session_factory, world.driver.id)
        assert driver.current_order_id == wins[0].id
        assert driver.is_available is False

        loser_id = second.id if wins[0].id == first.id else first.id
        loser = await lifecycle.get_order(loser_id, world.alice if loser_id == first.id else world.bob)
        assert loser.status is OrderStatus.REQUESTED
        assert loser.driver_id is None

    @pytest.mark.asyncio
    async def test_two_drivers_accepting_one_order(self, lifecycle, world, session_factory):
        order = await lifecycle.create_order(world.alice, PICKUP, DESTINATION, "cash")

        results = await asyncio.gather(
            lifecycle.advance_order_status(order.id, world.driver.user_id, "accepted"),
            lifecycle.advance_order_status(order.id, world.other_driver.user_id, "accepted"),
            return_exceptions=True,
        )
        wins, losses = split_outcomes(results)

        assert len(wins) == 1
        assert len(losses) == 1
        assert isinstance(losses[0], (ConflictError, InvalidState))

        order = await lifecycle.get_order(order.id, world.alice)
        winner = await load_driver(session_factory, order.driver_id)
        assert winner.current_order_id == order.id

        loser_id = (
            world.other_driver.id if order.driver_id == world.driver.id else world.driver.id
        )
        loser = await load_driver(session_factory, loser_id)
        assert loser.current_order_id is None
        assert loser.is_available is True


class TestOneActiveOrder:
    @pytest.mark.asyncio
    async def test_simultaneous_bookings(self, lifecycle, world):
        results = await asyncio.gather(
            lifecycle.create_order(world.alice, PICKUP, DESTINATION, "cash"),
            lifecycle.create_order(world.alice, PICKUP, DESTINATION, "card"),
            return_exceptions=True,
        )
        wins, losses = split_outcomes(results)

        assert len(wins) == 1
        assert len(losses) == 1
        assert isinstance(losses[0], ActiveOrderExists)

        active = await lifecycle.get_active_order(world.alice)
        assert active.id == wins[0].id


class TestRatingRace:
    @pytest.mark.asyncio
    async def test_simultaneous_ratings(self, lifecycle, driver_service, world, session_factory):
        order = await lifecycle.create_order(
            world.alice, PICKUP, DESTINATION, "cash", vehicle_type="van"
        )
        await deliver(lifecycle, order.id, world)

        results = await asyncio.gather(
            driver_service.rate_order(order.id, world.alice, 5),
            driver_service.rate_order(order.id, world.alice, 1),
            return_exceptions=True,
        )
        wins, losses = split_outcomes(results)

        assert len(wins) == 1
        assert len(losses) == 1
        assert isinstance(losses[0], DispatchError)
        assert isinstance(losses[0], AlreadyRated)

        driver = await load_driver(session_factory, world.driver.id)
        assert driver.rating == float(wins[0].rating)
