"""Domain enumerations and state-transition rules."""

import enum


class OrderStatus(str, enum.Enum):
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    CONFIRMED = "confirmed"
    DRIVER_GOING_TO_PICKUP = "driver_going_to_pickup"
    PICKUP_COMPLETED = "pickup_completed"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    PAYMENT_COMPLETED = "payment_completed"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value):
        # Case-insensitive, plus the names used by the simple ride flow
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return _LEGACY_ALIASES.get(key)


_LEGACY_ALIASES = {
    "pending": OrderStatus.REQUESTED,
    "started": OrderStatus.PICKUP_COMPLETED,
    "completed": OrderStatus.DELIVERED,
}


# Forward chain: maps current status -> the only legal next status
ORDER_TRANSITIONS: dict[OrderStatus, OrderStatus] = {
    OrderStatus.REQUESTED: OrderStatus.ACCEPTED,
    OrderStatus.ACCEPTED: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.DRIVER_GOING_TO_PICKUP,
    OrderStatus.DRIVER_GOING_TO_PICKUP: OrderStatus.PICKUP_COMPLETED,
    OrderStatus.PICKUP_COMPLETED: OrderStatus.IN_TRANSIT,
    OrderStatus.IN_TRANSIT: OrderStatus.DELIVERED,
    OrderStatus.DELIVERED: OrderStatus.PAYMENT_COMPLETED,
}

ACTIVE_STATUSES = frozenset(
    {
        OrderStatus.REQUESTED,
        OrderStatus.ACCEPTED,
        OrderStatus.CONFIRMED,
        OrderStatus.DRIVER_GOING_TO_PICKUP,
        OrderStatus.PICKUP_COMPLETED,
        OrderStatus.IN_TRANSIT,
    }
)

CANCELLABLE_STATUSES = frozenset({OrderStatus.REQUESTED, OrderStatus.ACCEPTED})

COMPLETED_STATUSES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.PAYMENT_COMPLETED}
)


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    WALLET = "wallet"


class ServiceType(str, enum.Enum):
    CARGO = "cargo"
    RIDE = "ride"


class OrderEvent(str, enum.Enum):
    CREATED = "order.created"
    CANCELLED = "order.cancelled"
    DRIVER_ASSIGNED = "driver.assigned"
    STATUS_CHANGED = "order.status_changed"
    COMPLETED = "order.completed"
    RATED = "order.rated"
    REPRICED = "order.repriced"
