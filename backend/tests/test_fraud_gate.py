"""
Tests for the velocity and anomaly heuristics.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.schemas.transaction import Party, TransactionDirection, TransactionView, UserHistory
from app.services import fraud_gate
from app.services.exceptions import FraudWarning

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _sent(amount: str, seconds_ago: int, n: int = 0) -> TransactionView:
    return TransactionView(
        id=f"t{n}-{seconds_ago}",
        sender=Party(uid="alice", name="Alice", email="alice@example.com"),
        receiver=Party(uid="bob", name="Bob", email="bob@example.com"),
        amount=Decimal(amount),
        date=NOW - timedelta(seconds=seconds_ago),
        description="test",
        type=TransactionDirection.sent,
    )


def _history(*transactions: TransactionView) -> UserHistory:
    amounts = [t.amount for t in transactions]
    avg = sum(amounts, Decimal("0")) / len(amounts) if amounts else Decimal("0")
    return UserHistory(avg_amount=avg, transactions=list(transactions))


class TestFraudGate:
    """Test cases for pre-transfer heuristics."""

    def test_no_history_passes(self):
        fraud_gate.evaluate(_history(), Decimal("10000"), now=NOW)

    def test_three_recent_transfers_warn(self):
        history = _history(_sent("10", 5, 1), _sent("10", 20, 2), _sent("10", 50, 3))

        with pytest.raises(FraudWarning) as exc_info:
            fraud_gate.evaluate(history, Decimal("10"), now=NOW)

        assert exc_info.value.code == "Velocity"
        assert "transfers very quickly" in exc_info.value.message

    def test_two_recent_transfers_pass(self):
        history = _history(_sent("10", 5, 1), _sent("10", 20, 2), _sent("10", 120, 3))
        fraud_gate.evaluate(history, Decimal("10"), now=NOW)

    def test_transfer_exactly_at_window_edge_is_not_recent(self):
        history = _history(_sent("10", 5, 1), _sent("10", 20, 2), _sent("10", 60, 3))
        fraud_gate.evaluate(history, Decimal("10"), now=NOW)

    def test_large_amount_warns_with_both_figures(self):
        history = _history(_sent("100", 3600, 1), _sent("100", 7200, 2))

        with pytest.raises(FraudWarning) as exc_info:
            fraud_gate.evaluate(history, Decimal("600"), now=NOW)

        assert exc_info.value.code == "Anomaly"
        assert "600.00" in exc_info.value.message
        assert "100.00" in exc_info.value.message

    def test_exactly_five_times_average_passes(self):
        history = _history(_sent("100", 3600, 1))
        fraud_gate.evaluate(history, Decimal("500"), now=NOW)

    def test_velocity_reported_before_anomaly(self):
        history = _history(_sent("1", 1, 1), _sent("1", 2, 2), _sent("1", 3, 3))
        with pytest.raises(FraudWarning) as exc_info:
            fraud_gate.evaluate(history, Decimal("999"), now=NOW)
        assert exc_info.value.code == "Velocity"

    def test_custom_rules(self):
        rules = {"velocity_window_seconds": 600, "velocity_limit": 2, "anomaly_multiplier": 2}
        history = _history(_sent("10", 300, 1), _sent("10", 400, 2))
        with pytest.raises(FraudWarning):
            fraud_gate.evaluate(history, Decimal("10"), rules=rules, now=NOW)

        assert fraud_gate.anomaly_check(_history(_sent("10", 9999, 1)), Decimal("25"), rules) is not None
