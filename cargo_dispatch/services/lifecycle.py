"""
Order Lifecycle State Machine
=============================

Every public operation runs as a single transaction: the order row, the
driver row and the status-history row are committed together or not at all.
Logical events are published to the notifier only after the commit.

Concurrency safety
------------------
* **One active order per customer** -- read-check for a friendly error,
  backed by the partial unique index on ``orders.customer_id``.
* **Exclusive driver binding** -- compare-and-swap ``UPDATE`` on the driver
  row (``current_order_id IS NULL AND is_available AND is_approved``).
* **Order row** -- ``SELECT ... FOR UPDATE`` plus an optimistic version
  column, so two writers on one order never both commit.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .base import EngineService, PendingEvents
from cargo_dispatch.domain.cancellation import (
    cancellation_penalty,
    resolve_cancellation_fee,
)
from cargo_dispatch.domain.distance import distance_between, estimate_duration_minutes
from cargo_dispatch.domain.entities import Location, Stop
from cargo_dispatch.domain.enums import (
    ACTIVE_STATUSES,
    CANCELLABLE_STATUSES,
    OrderEvent,
    OrderStatus,
    PaymentMethod,
    ServiceType,
)
from cargo_dispatch.domain.errors import (
    ActiveOrderExists,
    ConflictError,
    DriverUnavailable,
    InvalidInput,
    InvalidState,
    InvalidTransition,
    NotFound,
    NotOwner,
)
from cargo_dispatch.domain.lifecycle import (
    apply_transition,
    check_transition,
    ensure_cancellable,
    stamp,
)
from cargo_dispatch.domain.pricing import FareBreakdown, VehiclePricing, compute_fare
from cargo_dispatch.infrastructure.database import transaction
from cargo_dispatch.infrastructure.models import OrderModel, OrderStatusHistoryModel
from cargo_dispatch.infrastructure.repositories import (
    DriverRepository,
    OrderRepository,
    PricingRepository,
)

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Cancelled by customer"


class CancellationQuote:
    """What cancelling right now would cost; nothing is mutated."""

    def __init__(
        self,
        order_id: int,
        status: OrderStatus,
        total_price: float,
        fee_percentage: float,
    ):
        self.order_id = order_id
        self.status = status
        self.total_price = total_price
        self.fee_percentage = fee_percentage
        self.fee = cancellation_penalty(total_price, fee_percentage)
        self.cancellable = status in CANCELLABLE_STATUSES

    @property
    def has_fee(self) -> bool:
        return self.fee > 0


class PendingOrder:
    """A requested order plus how far its pickup is from the driver."""

    def __init__(self, order: OrderModel, distance_km: float, arrival_minutes: int):
        self.order = order
        self.distance_to_pickup_km = round(distance_km, 2)
        self.estimated_arrival_minutes = arrival_minutes


class OrderLifecycleService(EngineService):
    # ── Create ────────────────────────────────────────────────────────

    async def create_order(
        self,
        customer_id: int,
        pickup: Stop,
        destination: Stop,
        payment_method: Union[PaymentMethod, str],
        *,
        vehicle_type: Optional[str] = None,
        weight_kg: float = 0.0,
        labor_count: int = 0,
    ) -> OrderModel:
        """Book a new order in ``requested`` and price it."""
        payment = self._validate_create(
            pickup, destination, payment_method, weight_kg, labor_count
        )
        distance_km = distance_between(pickup.location, destination.location)
        if distance_km > self.settings.max_distance_km:
            raise InvalidInput(
                f"Distance cannot exceed {self.settings.max_distance_km:g} km",
                {"distance_km": round(distance_km, 2)},
            )
        service_type = ServiceType.CARGO if vehicle_type else ServiceType.RIDE

        events: PendingEvents = []
        async with transaction(self.session_factory) as session:
            orders = OrderRepository(session)
            if await orders.get_active_for_customer(customer_id) is not None:
                raise ActiveOrderExists(customer_id)

            pricing = await self._pricing_for(session, service_type, vehicle_type)
            fare = compute_fare(service_type, distance_km, labor_count, pricing)

            order = OrderModel(
                customer_id=customer_id,
                pickup_address=pickup.address.strip(),
                pickup_lat=pickup.location.latitude,
                pickup_lng=pickup.location.longitude,
                destination_address=destination.address.strip(),
                destination_lat=destination.location.latitude,
                destination_lng=destination.location.longitude,
                distance_km=round(distance_km, 2),
                duration_minutes=estimate_duration_minutes(
                    distance_km, self.settings.average_speed_kmh
                ),
                weight_kg=weight_kg,
                labor_count=labor_count,
                service_type=service_type,
                vehicle_type=vehicle_type,
                payment_method=payment,
                status=OrderStatus.REQUESTED,
            )
            _apply_fare(order, fare)
            stamp(order, OrderStatus.REQUESTED)

            try:
                await orders.create(order)
            except IntegrityError as exc:
                if _is_active_order_violation(exc):
                    raise ActiveOrderExists(customer_id) from exc
                raise

            await orders.add_history(
                order.id, None, OrderStatus.REQUESTED, customer_id, "Order created"
            )
            await session.flush()
            await session.refresh(order)
            events.append(
                (
                    OrderEvent.CREATED,
                    {
                        "order_id": order.id,
                        "customer_id": customer_id,
                        "service_type": service_type.value,
                        "total_price": order.total_price,
                    },
                )
            )

        logger.info(
            "order_created: order=%s customer=%s type=%s distance_km=%.2f total=%.2f",
            order.id,
            customer_id,
            service_type.value,
            order.distance_km,
            order.total_price,
        )
        await self._emit(events)
        return order

    def _validate_create(
        self,
        pickup: Stop,
        destination: Stop,
        payment_method: Union[PaymentMethod, str],
        weight_kg: float,
        labor_count: int,
    ) -> PaymentMethod:
        if pickup is None or destination is None:
            raise InvalidInput("Pickup and destination are required")
        pickup.validate("Pickup")
        destination.validate("Destination")
        try:
            payment = PaymentMethod(payment_method)
        except ValueError:
            raise InvalidInput(
                "Payment method must be one of cash, card, wallet",
                {"payment_method": payment_method},
            ) from None
        if weight_kg is None or weight_kg < 0:
            raise InvalidInput("Weight cannot be negative", {"weight_kg": weight_kg})
        self._validate_labor(labor_count)
        return payment

    def _validate_labor(self, labor_count: int) -> None:
        if (
            isinstance(labor_count, bool)
            or not isinstance(labor_count, int)
            or not 0 <= labor_count <= self.settings.max_labor_count
        ):
            raise InvalidInput(
                f"Labor count must be between 0 and {self.settings.max_labor_count}",
                {"labor_count": labor_count},
            )

    async def _pricing_for(
        self,
        session: AsyncSession,
        service_type: ServiceType,
        vehicle_type: Optional[str],
    ) -> VehiclePricing:
        if service_type is ServiceType.RIDE:
            return VehiclePricing(
                base_price=self.settings.ride_base_fare,
                price_per_km=self.settings.ride_rate_per_km,
                min_price=self.settings.ride_min_fare,
            )
        pricing = await PricingRepository(session).get_vehicle_pricing(vehicle_type)
        if pricing is None:
            raise NotFound("Pricing for vehicle type", vehicle_type)
        return pricing

    # ── Cancel ────────────────────────────────────────────────────────

    async def cancel_order(
        self, order_id: int, customer_id: int, reason: Optional[str] = None
    ) -> OrderModel:
        """Cancel a ``requested`` / ``accepted`` order and free its driver."""
        events: PendingEvents = []
        async with transaction(self.session_factory) as session:
            orders = OrderRepository(session)
            order = await self._load_owned(orders, order_id, customer_id)
            previous = OrderStatus(order.status)
            ensure_cancellable(previous)

            fee_table = await PricingRepository(session).get_fee_table()
            fee_percentage = resolve_cancellation_fee(previous, fee_table)

            order.status = OrderStatus.CANCELLED
            stamp(order, OrderStatus.CANCELLED)
            order.cancel_reason = (reason or "").strip() or DEFAULT_CANCEL_REASON
            order.cancellation_fee = cancellation_penalty(
                order.total_price, fee_percentage
            )
            if order.driver_id is not None:
                await self._release_driver(session, order, completed=False)

            await orders.add_history(
                order.id,
                previous,
                OrderStatus.CANCELLED,
                customer_id,
                order.cancel_reason,
            )
            await session.flush()
            await session.refresh(order)
            events.append(
                (
                    OrderEvent.CANCELLED,
                    {
                        "order_id": order.id,
                        "customer_id": customer_id,
                        "driver_id": order.driver_id,
                        "previous_status": previous.value,
                        "cancellation_fee": order.cancellation_fee,
                    },
                )
            )

        logger.info(
            "order_cancelled: order=%s from=%s fee_pct=%s fee=%.2f",
            order.id,
            previous.value,
            fee_percentage,
            order.cancellation_fee,
        )
        await self._emit(events)
        return order

    async def quote_cancellation_fee(
        self, order_id: int, customer_id: int
    ) -> CancellationQuote:
        async with transaction(self.session_factory) as session:
            order = await self._load_owned(
                OrderRepository(session), order_id, customer_id, for_update=False
            )
            status = OrderStatus(order.status)
            fee_table = await PricingRepository(session).get_fee_table()
            return CancellationQuote(
                order_id=order.id,
                status=status,
                total_price=order.total_price,
                fee_percentage=resolve_cancellation_fee(status, fee_table),
            )

    # ── Advance ───────────────────────────────────────────────────────

    async def advance_order_status(
        self,
        order_id: int,
        actor_id: int,
        target_status: Union[OrderStatus, str],
    ) -> OrderModel:
        """
        Move the order one step forward along the lifecycle.

        ``accepted`` binds the acting driver, ``confirmed`` is the customer's
        call, every later step belongs to the bound driver.  Reaching
        ``delivered`` completes the order and releases the driver.
        """
        target = _parse_status(target_status)
        events: PendingEvents = []
        async with transaction(self.session_factory) as session:
            orders = OrderRepository(session)
            drivers = DriverRepository(session)
            order = await orders.get_by_id(order_id, for_update=True)
            if order is None:
                raise NotFound("Order", order_id)
            current = OrderStatus(order.status)
            if target is OrderStatus.CANCELLED:
                raise InvalidTransition(current, target)

            if target is OrderStatus.ACCEPTED:
                driver = await drivers.get_by_user_id(actor_id)
                if driver is None:
                    raise NotFound("Driver for user", actor_id)
                check_transition(current, target)
                if not await drivers.try_bind(driver.id, order.id):
                    logger.info(
                        "driver_bind_rejected: driver=%s order=%s", driver.id, order.id
                    )
                    raise DriverUnavailable(driver.id)
                order.driver_id = driver.id
                events.append(
                    (
                        OrderEvent.DRIVER_ASSIGNED,
                        {
                            "order_id": order.id,
                            "customer_id": order.customer_id,
                            "driver_id": driver.id,
                        },
                    )
                )
            elif target is OrderStatus.CONFIRMED:
                if order.customer_id != actor_id:
                    raise NotOwner("Only the customer can confirm this order")
                check_transition(current, target)
            else:
                await self._ensure_bound_driver(drivers, order, actor_id)
                check_transition(current, target)

            apply_transition(order, target)
            if target is OrderStatus.DELIVERED:
                order.final_price = order.total_price
                await self._release_driver(session, order, completed=True)
                events.append(
                    (
                        OrderEvent.COMPLETED,
                        {
                            "order_id": order.id,
                            "customer_id": order.customer_id,
                            "driver_id": order.driver_id,
                            "final_price": order.final_price,
                        },
                    )
                )

            await orders.add_history(order.id, current, target, actor_id)
            await session.flush()
            await session.refresh(order)
            events.append(
                (
                    OrderEvent.STATUS_CHANGED,
                    {
                        "order_id": order.id,
                        "customer_id": order.customer_id,
                        "driver_id": order.driver_id,
                        "from": current.value,
                        "to": target.value,
                    },
                )
            )

        logger.info(
            "order_status_changed: order=%s %s->%s actor=%s",
            order.id,
            current.value,
            target.value,
            actor_id,
        )
        await self._emit(events)
        return order

    # ── Labor correction ─────────────────────────────────────────────

    async def update_labor_count(
        self, order_id: int, actor_id: int, labor_count: int
    ) -> OrderModel:
        """The bound driver corrects the helper count; the cargo fare is redone."""
        self._validate_labor(labor_count)
        events: PendingEvents = []
        async with transaction(self.session_factory) as session:
            orders = OrderRepository(session)
            order = await orders.get_by_id(order_id, for_update=True)
            if order is None:
                raise NotFound("Order", order_id)
            await self._ensure_bound_driver(DriverRepository(session), order, actor_id)

            status = OrderStatus(order.status)
            if status not in ACTIVE_STATUSES or status is OrderStatus.REQUESTED:
                raise InvalidState(
                    "Labor can only be updated while the order is in progress", status
                )
            if ServiceType(order.service_type) is not ServiceType.CARGO:
                raise InvalidInput("Labor pricing applies to cargo orders only")

            pricing = await self._pricing_for(session, ServiceType.CARGO, order.vehicle_type)
            fare = compute_fare(ServiceType.CARGO, order.distance_km, labor_count, pricing)
            previous_total = order.total_price
            order.labor_count = labor_count
            _apply_fare(order, fare)

            await orders.add_history(
                order.id,
                status,
                status,
                actor_id,
                f"Labor count updated to {labor_count}; new total {fare.total:.2f}",
            )
            await session.flush()
            await session.refresh(order)
            events.append(
                (
                    OrderEvent.REPRICED,
                    {
                        "order_id": order.id,
                        "customer_id": order.customer_id,
                        "labor_count": labor_count,
                        "previous_total": previous_total,
                        "total_price": order.total_price,
                    },
                )
            )

        logger.info(
            "order_repriced: order=%s labor=%s total=%.2f->%.2f",
            order.id,
            labor_count,
            previous_total,
            order.total_price,
        )
        await self._emit(events)
        return order

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_order(self, order_id: int, user_id: int) -> OrderModel:
        async with transaction(self.session_factory) as session:
            order = await OrderRepository(session).get_by_id(order_id)
            if order is None:
                raise NotFound("Order", order_id)
            await self._ensure_visible(session, order, user_id)
            return order

    async def get_active_order(self, customer_id: int) -> OrderModel:
        async with transaction(self.session_factory) as session:
            order = await OrderRepository(session).get_active_for_customer(customer_id)
            if order is None:
                raise NotFound("Active order")
            return order

    async def list_customer_orders(
        self,
        customer_id: int,
        *,
        statuses: Optional[Iterable[Union[OrderStatus, str]]] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[OrderModel]:
        """The customer's orders, newest first; *limit* is capped by settings."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidInput("Limit must be a positive whole number", {"limit": limit})
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise InvalidInput("Offset cannot be negative", {"offset": offset})
        wanted = [_parse_status(s) for s in statuses] if statuses else None

        async with transaction(self.session_factory) as session:
            return await OrderRepository(session).list_for_customer(
                customer_id,
                statuses=wanted,
                limit=min(limit, self.settings.max_page_size),
                offset=offset,
            )

    async def list_pending_orders(
        self, driver_user_id: int, position: Location
    ) -> list[PendingOrder]:
        """Requested orders an approved, available driver could accept."""
        position.validate("Driver position")
        async with transaction(self.session_factory) as session:
            driver = await DriverRepository(session).get_by_user_id(driver_user_id)
            if driver is None:
                raise NotFound("Driver for user", driver_user_id)
            if not driver.is_approved:
                raise InvalidState("Driver is not approved", "unapproved")
            if not driver.is_available:
                raise InvalidState("Driver is not available", "unavailable")
            nearby = await OrderRepository(session).list_requested_near(
                position.latitude,
                position.longitude,
                self.settings.driver_search_radius_km,
                self.settings.max_pending_orders,
            )

        logger.debug(
            "pending_orders_listed: driver=%s found=%s", driver.id, len(nearby)
        )
        return [
            PendingOrder(
                order,
                distance,
                estimate_duration_minutes(distance, self.settings.average_speed_kmh),
            )
            for order, distance in nearby
        ]

    async def get_order_history(
        self, order_id: int, user_id: int
    ) -> list[OrderStatusHistoryModel]:
        async with transaction(self.session_factory) as session:
            orders = OrderRepository(session)
            order = await orders.get_by_id(order_id)
            if order is None:
                raise NotFound("Order", order_id)
            await self._ensure_visible(session, order, user_id)
            return await orders.get_history(order_id)

    # ── Internals ─────────────────────────────────────────────────────

    async def _load_owned(
        self,
        orders: OrderRepository,
        order_id: int,
        customer_id: int,
        *,
        for_update: bool = True,
    ) -> OrderModel:
        order = await orders.get_by_id(order_id, for_update=for_update)
        if order is None:
            raise NotFound("Order", order_id)
        if order.customer_id != customer_id:
            raise NotOwner("Order belongs to another customer")
        return order

    async def _ensure_bound_driver(
        self, drivers: DriverRepository, order: OrderModel, actor_id: int
    ) -> None:
        driver = (
            await drivers.get_by_id(order.driver_id)
            if order.driver_id is not None
            else None
        )
        if driver is None or driver.user_id != actor_id:
            raise NotOwner("Only the assigned driver can update this order")

    async def _ensure_visible(
        self, session: AsyncSession, order: OrderModel, user_id: int
    ) -> None:
        if order.customer_id == user_id:
            return
        await self._ensure_bound_driver(DriverRepository(session), order, user_id)

    async def _release_driver(
        self, session: AsyncSession, order: OrderModel, *, completed: bool
    ) -> None:
        """Shared by cancel and complete: unbind and mark the driver available."""
        released = await DriverRepository(session).release(
            order.driver_id, order.id, completed=completed
        )
        if not released:
            raise ConflictError(
                "Driver binding changed concurrently",
                {"driver_id": order.driver_id, "order_id": order.id},
            )
        logger.debug(
            "driver_released: driver=%s order=%s completed=%s",
            order.driver_id,
            order.id,
            completed,
        )


def _parse_status(value: Union[OrderStatus, str]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidInput(f"Unknown order status: {value}", {"status": value}) from None


def _apply_fare(order: OrderModel, fare: FareBreakdown) -> None:
    order.base_price = fare.base_price
    order.distance_price = fare.distance_price
    order.labor_price = fare.labor_price
    order.total_price = fare.total


def _is_active_order_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return (
        "uq_orders_one_active_per_customer" in message
        or "orders.customer_id" in message
    )
