"""
Per-user views and statistics derived from the transaction log.

Everything here is a full scan over the log; nothing is maintained
incrementally.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

from app.schemas.transaction import TransactionDirection, TransactionRead, TransactionView, UserHistory
from app.schemas.user import UserHistorySummary


def direction_for(transaction: TransactionRead, viewer_uid: str) -> TransactionDirection:
    if transaction.sender.uid == viewer_uid:
        return TransactionDirection.sent
    return TransactionDirection.received


def transactions_for_user(transactions: Iterable[TransactionRead], uid: str) -> List[TransactionView]:
    """Every transaction touching ``uid``, tagged relative to it, newest first.

    ``sorted`` is stable, so equal timestamps keep the log order.
    """
    views = [
        TransactionView(**txn.model_dump(exclude={"type"}), type=direction_for(txn, uid))
        for txn in transactions
        if txn.sender.uid == uid or txn.receiver.uid == uid
    ]
    return sorted(views, key=lambda v: v.date, reverse=True)


def _average(amounts: List[Decimal]) -> Decimal:
    if not amounts:
        return Decimal("0")
    return sum(amounts, Decimal("0")) / len(amounts)


def history_stats(transactions: Iterable[TransactionRead], uid: str) -> UserHistory:
    sent = [v for v in transactions_for_user(transactions, uid) if v.type == TransactionDirection.sent]
    return UserHistory(avg_amount=_average([v.amount for v in sent]), transactions=sent)


def history_summary(transactions: Iterable[TransactionRead], uid: str) -> UserHistorySummary:
    stats = history_stats(transactions, uid)
    return UserHistorySummary(
        total_transactions=len(stats.transactions),
        average_amount=stats.avg_amount,
    )


def recent_count(history: UserHistory, window_seconds: int, now: Optional[datetime] = None) -> int:
    """Number of sent transactions strictly newer than ``now - window_seconds``."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(seconds=window_seconds)
    return len([t for t in history.transactions if t.date > cutoff])
