"""
Tests for the history aggregator.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.schemas.transaction import Party, TransactionDirection, TransactionRead
from app.services.history import (
    direction_for,
    history_stats,
    history_summary,
    recent_count,
    transactions_for_user,
)

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _party(uid: str) -> Party:
    return Party(uid=uid, name=uid.title(), email=f"{uid}@example.com")


def _txn(txn_id: str, sender: str, receiver: str, amount: str, minutes_ago: int) -> TransactionRead:
    return TransactionRead(
        id=txn_id,
        sender=_party(sender),
        receiver=_party(receiver),
        amount=Decimal(amount),
        date=NOW - timedelta(minutes=minutes_ago),
        description="test",
    )


LOG = [
    _txn("t4", "carol", "alice", "40.00", 1),
    _txn("t3", "alice", "bob", "30.00", 5),
    _txn("t2", "bob", "alice", "20.00", 10),
    _txn("t1", "alice", "carol", "10.00", 20),
    _txn("t0", "bob", "carol", "99.00", 30),
]


class TestHistoryAggregator:
    """Test cases for per-user transaction views and statistics."""

    def test_direction_is_relative_to_viewer(self):
        txn = LOG[1]
        assert direction_for(txn, "alice") == TransactionDirection.sent
        assert direction_for(txn, "bob") == TransactionDirection.received

    def test_transactions_for_user_filters_and_tags(self):
        views = transactions_for_user(LOG, "alice")

        assert [v.id for v in views] == ["t4", "t3", "t2", "t1"]
        assert [v.type for v in views] == [
            TransactionDirection.received,
            TransactionDirection.sent,
            TransactionDirection.received,
            TransactionDirection.sent,
        ]

    def test_transactions_sorted_newest_first(self):
        shuffled = [LOG[3], LOG[0], LOG[2], LOG[1]]
        views = transactions_for_user(shuffled, "alice")
        dates = [v.date for v in views]
        assert dates == sorted(dates, reverse=True)

    def test_ties_keep_log_order(self):
        a = _txn("a", "alice", "bob", "1.00", 3)
        b = _txn("b", "alice", "bob", "2.00", 3)
        assert [v.id for v in transactions_for_user([a, b], "alice")] == ["a", "b"]

    def test_stored_record_is_not_tagged(self):
        transactions_for_user(LOG, "alice")
        assert "type" not in LOG[1].model_dump()

    def test_history_stats_averages_sent_only(self):
        stats = history_stats(LOG, "alice")

        assert [t.id for t in stats.transactions] == ["t3", "t1"]
        assert stats.avg_amount == Decimal("20")

    def test_history_stats_empty(self):
        stats = history_stats(LOG, "nobody")
        assert stats.avg_amount == 0
        assert stats.transactions == []

    def test_history_stats_receiver_only_has_zero_average(self):
        only_received = [_txn("r", "bob", "dave", "50.00", 1)]
        assert history_stats(only_received, "dave").avg_amount == 0

    def test_history_summary(self):
        summary = history_summary(LOG, "bob")
        assert summary.total_transactions == 2
        assert summary.average_amount == Decimal("59.5")

    def test_recent_count_window(self):
        stats = history_stats(LOG, "alice")
        assert recent_count(stats, 60, now=NOW) == 0
        assert recent_count(stats, 6 * 60, now=NOW) == 1
        assert recent_count(stats, 60 * 60, now=NOW) == 2
