"""
Driver Availability & Rating Aggregator
=======================================

* Availability follows the lifecycle (bind -> unavailable, release ->
  available); drivers may also go offline/online themselves.
* Approval is an admin gate: unapproved drivers are never bound.
* A trip rating recomputes the driver's average over *all* ratings, inside
  the same transaction that inserts the rating and with the driver row
  locked, so two ratings landing at once cannot both read a stale average.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from .base import EngineService, PendingEvents
from cargo_dispatch.domain.enums import COMPLETED_STATUSES, OrderEvent, OrderStatus
from cargo_dispatch.domain.errors import (
    AlreadyRated,
    InvalidState,
    NotCompleted,
    NotFound,
    NotOwner,
)
from cargo_dispatch.domain.lifecycle import utcnow
from cargo_dispatch.domain.rating import average_rating, validate_rating
from cargo_dispatch.infrastructure.database import transaction
from cargo_dispatch.infrastructure.models import DriverModel, TripRatingModel
from cargo_dispatch.infrastructure.repositories import (
    DriverRepository,
    OrderRepository,
    RatingRepository,
)

logger = logging.getLogger(__name__)


class DriverService(EngineService):
    async def set_availability(self, user_id: int, available: bool) -> DriverModel:
        """The driver's own online / offline switch."""
        async with transaction(self.session_factory) as session:
            drivers = DriverRepository(session)
            driver = await drivers.get_by_user_id(user_id)
            if driver is None:
                raise NotFound("Driver for user", user_id)
            if not await drivers.set_available(driver.id, available):
                raise InvalidState("Driver has an active order", "bound")
            await session.refresh(driver)

        logger.info("driver_availability: driver=%s available=%s", driver.id, available)
        return driver

    async def set_approval(self, driver_id: int, approved: bool) -> DriverModel:
        async with transaction(self.session_factory) as session:
            driver = await DriverRepository(session).get_by_id(driver_id, for_update=True)
            if driver is None:
                raise NotFound("Driver", driver_id)
            driver.is_approved = approved
            await session.flush()
            await session.refresh(driver)

        logger.info("driver_approval: driver=%s approved=%s", driver_id, approved)
        return driver

    async def rate_order(
        self,
        order_id: int,
        customer_id: int,
        rating: Any,
        comment: Optional[str] = None,
    ) -> TripRatingModel:
        """Record the customer's rating of a completed trip."""
        rating = validate_rating(rating)
        events: PendingEvents = []
        async with transaction(self.session_factory) as session:
            order = await OrderRepository(session).get_by_id(order_id)
            if order is None:
                raise NotFound("Order", order_id)
            if order.customer_id != customer_id:
                raise NotOwner("Order belongs to another customer")
            status = OrderStatus(order.status)
            if status not in COMPLETED_STATUSES:
                raise NotCompleted(status)

            ratings = RatingRepository(session)
            if await ratings.get_for_order(order_id) is not None:
                raise AlreadyRated(order_id)

            drivers = DriverRepository(session)
            if order.driver_id is not None:
                # Serialise recomputation per driver
                await drivers.get_by_id(order.driver_id, for_update=True)

            entry = TripRatingModel(
                order_id=order_id,
                customer_id=customer_id,
                driver_id=order.driver_id,
                rating=rating,
                comment=comment or None,
                created_at=utcnow(),
            )
            try:
                await ratings.create(entry)
            except IntegrityError as exc:
                raise AlreadyRated(order_id) from exc

            new_average = None
            if order.driver_id is not None:
                new_average = average_rating(
                    await ratings.ratings_for_driver(order.driver_id)
                )
                await drivers.set_rating(order.driver_id, new_average)
            events.append(
                (
                    OrderEvent.RATED,
                    {
                        "order_id": order_id,
                        "driver_id": order.driver_id,
                        "rating": rating,
                        "driver_rating": new_average,
                    },
                )
            )

        logger.info(
            "order_rated: order=%s driver=%s rating=%s driver_avg=%s",
            order_id,
            order.driver_id,
            rating,
            new_average,
        )
        await self._emit(events)
        return entry
