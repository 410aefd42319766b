from typing import List, Dict, Any
from datetime import datetime, timezone
import logging
import os

logger = logging.getLogger(__name__)

alerts: List[Dict[str, Any]] = []
MAX_ALERTS = 500
HIGH_RISK_ALERT_THRESHOLD = int(os.getenv("HIGH_RISK_ALERT_THRESHOLD", "70"))


def trigger_alert(event_type: str, details: str):
    alert = {
        "event_type": event_type,
        "details": details,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    alerts.append(alert)
    del alerts[:-MAX_ALERTS]
    logger.warning("[ALERT] %s: %s", event_type, details)
    return alert


def get_alerts() -> List[Dict[str, Any]]:
    return alerts[-50:]  # Return last 50 alerts


def clear_alerts() -> None:
    alerts.clear()
