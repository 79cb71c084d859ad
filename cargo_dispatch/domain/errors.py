"""
Engine error taxonomy.

Every rejection carries a stable ``error_code`` and a user-displayable
message.  ``kind`` groups them for the transport layer:

* ``validation``     -- malformed input, rejected before any state read
* ``not_found``      -- the order / driver / pricing row does not exist
* ``ownership``      -- the actor does not own the resource
* ``state``          -- operation not valid for the current status
* ``concurrency``    -- a race was lost; safe to retry once
* ``infrastructure`` -- storage failure; the only class clients may auto-retry
"""

from __future__ import annotations

from typing import Any, Optional


class DispatchError(Exception):
    kind = "internal"
    error_code = "ERR_DISPATCH"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ── Validation ────────────────────────────────────────────────────────


class InvalidInput(DispatchError):
    kind = "validation"
    error_code = "ERR_INVALID_INPUT"


class InvalidRating(InvalidInput):
    error_code = "ERR_INVALID_RATING"

    def __init__(self, rating: Any):
        super().__init__(
            "Rating must be a whole number between 1 and 5",
            {"rating": rating},
        )


# ── Lookup / ownership ───────────────────────────────────────────────


class NotFound(DispatchError):
    kind = "not_found"
    error_code = "ERR_NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} {resource_id} not found"
        super().__init__(message, {"resource": resource, "id": resource_id})


class NotOwner(DispatchError):
    kind = "ownership"
    error_code = "ERR_NOT_OWNER"


# ── State ─────────────────────────────────────────────────────────────


class InvalidState(DispatchError):
    kind = "state"
    error_code = "ERR_INVALID_STATE"

    def __init__(self, message: str, current_status: Any = None):
        self.current_status = current_status
        status = getattr(current_status, "value", current_status)
        super().__init__(message, {"current_status": status})


class InvalidTransition(InvalidState):
    error_code = "ERR_INVALID_TRANSITION"

    def __init__(self, current_status: Any, target_status: Any):
        self.target_status = target_status
        current = getattr(current_status, "value", current_status)
        target = getattr(target_status, "value", target_status)
        super().__init__(f"Cannot move order from {current} to {target}", current_status)
        self.details["target_status"] = target


class ActiveOrderExists(InvalidState):
    error_code = "ERR_ACTIVE_ORDER_EXISTS"

    def __init__(self, customer_id: int):
        super().__init__("Customer already has an active order")
        self.details["customer_id"] = customer_id


class NotCompleted(InvalidState):
    error_code = "ERR_NOT_COMPLETED"

    def __init__(self, current_status: Any):
        super().__init__("Only completed trips can be rated", current_status)


class AlreadyRated(InvalidState):
    error_code = "ERR_ALREADY_RATED"

    def __init__(self, order_id: int):
        super().__init__("This trip has already been rated")
        self.details["order_id"] = order_id


# ── Concurrency ───────────────────────────────────────────────────────


class ConflictError(DispatchError):
    kind = "concurrency"
    error_code = "ERR_CONFLICT"


class DriverUnavailable(ConflictError):
    error_code = "ERR_DRIVER_UNAVAILABLE"

    def __init__(self, driver_id: int):
        super().__init__(
            "Driver is not available for a new order", {"driver_id": driver_id}
        )


# ── Infrastructure ────────────────────────────────────────────────────


class StorageError(DispatchError):
    kind = "infrastructure"
    error_code = "ERR_STORAGE"
