from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from app.schemas.transaction import UserHistory
from app.services.exceptions import FraudWarning
from app.services.history import recent_count

# Thresholds for the pre-transfer heuristics (could be loaded from DB)
default_rules = {
    "velocity_window_seconds": 60,
    "velocity_limit": 3,
    "anomaly_multiplier": 5,
}

VELOCITY_MESSAGE = "You're making transfers very quickly. Please confirm you want to proceed."
ANOMALY_MESSAGE = (
    "This transaction of ${amount:.2f} is much larger than your average of ${average:.2f}. "
    "Please confirm you want to proceed."
)


def velocity_check(sender_history: UserHistory, rules: Dict[str, Any], now: Optional[datetime] = None) -> Optional[str]:
    if not sender_history.transactions:
        return None
    if recent_count(sender_history, rules["velocity_window_seconds"], now) >= rules["velocity_limit"]:
        return VELOCITY_MESSAGE
    return None


def anomaly_check(sender_history: UserHistory, amount: Decimal, rules: Dict[str, Any]) -> Optional[str]:
    average = sender_history.avg_amount
    if average > 0 and amount > average * Decimal(str(rules["anomaly_multiplier"])):
        return ANOMALY_MESSAGE.format(amount=amount, average=average)
    return None


def evaluate(
    sender_history: UserHistory,
    amount: Decimal,
    rules: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> None:
    """Raise ``FraudWarning`` when the transfer looks unusual for this sender.

    Velocity is checked before the amount anomaly; the first hit wins.
    """
    if rules is None:
        rules = default_rules
    message = velocity_check(sender_history, rules, now)
    if message:
        raise FraudWarning("Velocity", message)
    message = anomaly_check(sender_history, amount, rules)
    if message:
        raise FraudWarning("Anomaly", message)
