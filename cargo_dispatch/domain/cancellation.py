"""
Cancellation Fee Resolver
=========================

The back office maintains one row per order status::

    status -> (fee_percentage 0..100, is_active)

A missing or inactive row means no fee.  ``payment_completed`` is reserved:
cancelling a paid order is not a supported concept, so it never resolves to
a fee and cannot be configured.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Union

from .enums import OrderStatus

RESERVED_STATUSES = frozenset({OrderStatus.PAYMENT_COMPLETED})


@dataclass(frozen=True)
class CancellationFeeRule:
    status: OrderStatus
    fee_percentage: float
    is_active: bool = True
    description: Optional[str] = None


FeeTable = Union[Mapping[OrderStatus, CancellationFeeRule], Iterable[CancellationFeeRule]]


DEFAULT_CANCELLATION_FEES: tuple[CancellationFeeRule, ...] = (
    CancellationFeeRule(OrderStatus.REQUESTED, 0, True, "No fee while waiting for a driver"),
    CancellationFeeRule(OrderStatus.ACCEPTED, 0, True, "Driver accepted, awaiting customer confirmation"),
    CancellationFeeRule(OrderStatus.CONFIRMED, 10, True, "Confirmed orders"),
    CancellationFeeRule(OrderStatus.DRIVER_GOING_TO_PICKUP, 15, True, "Driver is on the way"),
    CancellationFeeRule(OrderStatus.PICKUP_COMPLETED, 25, True, "Load picked up"),
    CancellationFeeRule(OrderStatus.IN_TRANSIT, 50, True, "Load in transit"),
    CancellationFeeRule(OrderStatus.DELIVERED, 100, True, "Delivered orders"),
)


def _index(fee_table: FeeTable) -> Mapping[OrderStatus, CancellationFeeRule]:
    if isinstance(fee_table, Mapping):
        return fee_table
    return {rule.status: rule for rule in fee_table}


def resolve_cancellation_fee(status: OrderStatus, fee_table: FeeTable) -> float:
    """Return the fee percentage charged when cancelling in *status*."""
    if status in RESERVED_STATUSES:
        return 0.0
    rule = _index(fee_table).get(status)
    if rule is None or not rule.is_active:
        return 0.0
    return float(rule.fee_percentage)


def cancellation_penalty(total_price: float, fee_percentage: float) -> float:
    return round(total_price * fee_percentage / 100, 2)


def validate_rule(rule: CancellationFeeRule) -> None:
    if rule.status in RESERVED_STATUSES or rule.status is OrderStatus.CANCELLED:
        raise ValueError(f"Cancellation fee cannot be configured for {rule.status.value}")
    if not 0 <= rule.fee_percentage <= 100:
        raise ValueError("fee_percentage must be between 0 and 100")
