"""Unit tests for the cancellation fee resolver."""

import pytest

from cargo_dispatch.domain.cancellation import (
    DEFAULT_CANCELLATION_FEES,
    CancellationFeeRule,
    cancellation_penalty,
    resolve_cancellation_fee,
    validate_rule,
)
from cargo_dispatch.domain.enums import OrderStatus


class TestResolveCancellationFee:
    def test_uses_configured_row(self):
        assert resolve_cancellation_fee(OrderStatus.CONFIRMED, DEFAULT_CANCELLATION_FEES) == 10.0
        assert resolve_cancellation_fee(OrderStatus.IN_TRANSIT, DEFAULT_CANCELLATION_FEES) == 50.0

    def test_missing_row_means_no_fee(self):
        table = {
            OrderStatus.CONFIRMED: CancellationFeeRule(OrderStatus.CONFIRMED, 10),
        }
        assert resolve_cancellation_fee(OrderStatus.IN_TRANSIT, table) == 0.0

    def test_inactive_row_means_no_fee(self):
        table = [CancellationFeeRule(OrderStatus.ACCEPTED, 30, is_active=False)]
        assert resolve_cancellation_fee(OrderStatus.ACCEPTED, table) == 0.0

    def test_payment_completed_is_reserved(self):
        table = [CancellationFeeRule(OrderStatus.PAYMENT_COMPLETED, 100)]
        assert resolve_cancellation_fee(OrderStatus.PAYMENT_COMPLETED, table) == 0.0

    def test_empty_table(self):
        assert resolve_cancellation_fee(OrderStatus.REQUESTED, []) == 0.0


class TestPenalty:
    def test_percentage_of_total(self):
        assert cancellation_penalty(150.0, 10) == 15.0

    def test_fractional_amount(self):
        assert cancellation_penalty(45.5, 10) == 4.55

    def test_zero_percent(self):
        assert cancellation_penalty(99.9, 0) == 0.0


class TestValidateRule:
    def test_accepts_valid_row(self):
        validate_rule(CancellationFeeRule(OrderStatus.CONFIRMED, 12.5))

    @pytest.mark.parametrize("status", [OrderStatus.PAYMENT_COMPLETED, OrderStatus.CANCELLED])
    def test_rejects_unconfigurable_status(self, status):
        with pytest.raises(ValueError):
            validate_rule(CancellationFeeRule(status, 10))

    @pytest.mark.parametrize("pct", [-1, 100.5])
    def test_rejects_out_of_range_percentage(self, pct):
        with pytest.raises(ValueError):
            validate_rule(CancellationFeeRule(OrderStatus.CONFIRMED, pct))
