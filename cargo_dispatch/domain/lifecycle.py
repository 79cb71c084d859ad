"""
Order lifecycle rules  (State Pattern)
======================================

    requested -> accepted -> confirmed -> driver_going_to_pickup
      -> pickup_completed -> in_transit -> delivered -> payment_completed

``cancelled`` is reachable only from ``requested`` and ``accepted`` and only
through the cancel operation, never through a forward step.

The helpers here work on any object exposing the order's status and
timestamp attributes, so the ORM row is mutated directly by the service.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from .enums import CANCELLABLE_STATUSES, ORDER_TRANSITIONS, OrderStatus
from .errors import InvalidState, InvalidTransition

TIMESTAMP_FIELDS: dict[OrderStatus, str] = {
    OrderStatus.REQUESTED: "requested_at",
    OrderStatus.ACCEPTED: "accepted_at",
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.PICKUP_COMPLETED: "started_at",
    OrderStatus.DELIVERED: "completed_at",
    OrderStatus.PAYMENT_COMPLETED: "paid_at",
    OrderStatus.CANCELLED: "cancelled_at",
}

CANCEL_REJECTIONS: dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "order is already confirmed",
    OrderStatus.DRIVER_GOING_TO_PICKUP: "order is already confirmed",
    OrderStatus.PICKUP_COMPLETED: "started trip cannot be cancelled",
    OrderStatus.IN_TRANSIT: "started trip cannot be cancelled",
    OrderStatus.DELIVERED: "completed trip cannot be cancelled",
    OrderStatus.PAYMENT_COMPLETED: "completed trip cannot be cancelled",
    OrderStatus.CANCELLED: "trip is already cancelled",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def next_status(current: OrderStatus) -> Optional[OrderStatus]:
    return ORDER_TRANSITIONS.get(OrderStatus(current))


def check_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise unless *target* is the immediate successor of *current*."""
    current, target = OrderStatus(current), OrderStatus(target)
    if next_status(current) is not target:
        raise InvalidTransition(current, target)


def ensure_cancellable(current: OrderStatus) -> None:
    current = OrderStatus(current)
    if current in CANCELLABLE_STATUSES:
        return
    raise InvalidState(
        CANCEL_REJECTIONS.get(current, "order cannot be cancelled"), current
    )


def stamp(order: Any, status: OrderStatus, now: Optional[datetime] = None) -> None:
    """
    Record the timestamp for *status* on *order*.

    Each timestamp is written at most once and never earlier than the latest
    timestamp already on the order.
    """
    field = TIMESTAMP_FIELDS.get(OrderStatus(status))
    if field is None or getattr(order, field, None) is not None:
        return

    now = as_utc(now or utcnow())
    previous = [
        as_utc(value)
        for value in (getattr(order, f, None) for f in TIMESTAMP_FIELDS.values())
        if value is not None
    ]
    if previous:
        now = max(now, max(previous))
    setattr(order, field, now)


def apply_transition(
    order: Any, target: OrderStatus, now: Optional[datetime] = None
) -> OrderStatus:
    """Validate and apply a forward step.  Returns the previous status."""
    previous = OrderStatus(order.status)
    check_transition(previous, target)
    order.status = OrderStatus(target)
    stamp(order, order.status, now)
    return previous
