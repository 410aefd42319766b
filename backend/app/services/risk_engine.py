from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, List, Optional

from app.schemas.risk import FraudAnalysis, FraudReportContext, RiskAssessment, RiskContext
from app.services.alert_service import HIGH_RISK_ALERT_THRESHOLD
from app.services.risk_scorer import FraudExplainer, RiskScorer

# Example of dynamic rules (could be loaded from DB)
default_rules = {
    "large_amount": 500,
    "large_amount_penalty": 30,
    "above_average_multiplier": 3,
    "above_average_penalty": 25,
    "first_transfer_penalty": 10,
    "unusual_time": 15,
    "suspicious_description": 40,
    "high_threshold": HIGH_RISK_ALERT_THRESHOLD,
    "medium_threshold": 40,
}

SUSPICIOUS_DESCRIPTION_TERMS = (
    "urgent", "verify account", "verify your account", "unlock", "gift card",
    "wire immediately", "crypto", "investment opportunity", "lottery", "prize",
)

FRAUD_REPORT_TERMS = (
    "unauthorized", "unauthorised", "didn't authorize", "did not authorize", "not me",
    "scam", "stolen", "hacked", "phishing", "impersonat", "never received", "fraud",
)


def _matches(text: str, terms) -> List[str]:
    lowered = (text or "").lower()
    return [t for t in terms if t in lowered]


def score_transaction(context: RiskContext, rules: Dict[str, Any] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
    if rules is None:
        rules = default_rules
    now = now or datetime.now(timezone.utc)
    risk_score = 0
    reasons = []

    # Large amount (absolute)
    if context.amount > Decimal(str(rules["large_amount"])):
        risk_score += rules["large_amount_penalty"]
        reasons.append("Large transaction amount")
    # Well above the sender's own average
    if context.average_amount > 0 and context.amount > context.average_amount * Decimal(str(rules["above_average_multiplier"])):
        risk_score += rules["above_average_penalty"]
        reasons.append("Amount well above sender average")
    # No sending history to compare against
    if context.total_transactions == 0:
        risk_score += rules["first_transfer_penalty"]
        reasons.append("First transfer from this sender")
    # Unusual time
    hour = now.hour
    if hour < 8 or hour > 20:
        risk_score += rules["unusual_time"]
        reasons.append("Unusual transaction time")
    # Social-engineering wording
    hits = _matches(context.description, SUSPICIOUS_DESCRIPTION_TERMS)
    if hits:
        risk_score += rules["suspicious_description"]
        reasons.append(f"Suspicious description ({', '.join(hits)})")

    risk_score = min(risk_score, 100)
    if risk_score >= rules["high_threshold"]:
        level = "high"
    elif risk_score >= rules["medium_threshold"]:
        level = "medium"
    else:
        level = "low"
    return {
        "risk_score": risk_score,
        "level": level,
        "reasons": reasons,
    }


def assess_fraud_report(context: FraudReportContext) -> Dict[str, Any]:
    reasons = []
    hits = _matches(context.user_report, FRAUD_REPORT_TERMS)
    if hits:
        reasons.append(f"Report describes {', '.join(hits)}")
    risk_score = context.transaction.risk_score
    if risk_score is not None and risk_score >= HIGH_RISK_ALERT_THRESHOLD:
        reasons.append(f"Transaction was scored high risk ({risk_score}) when sent")
    desc_hits = _matches(context.transaction.description, SUSPICIOUS_DESCRIPTION_TERMS)
    if desc_hits:
        reasons.append(f"Description contains {', '.join(desc_hits)}")
    return {"fraudulent": bool(reasons), "reasons": reasons}


class RuleBasedRiskScorer(RiskScorer):
    """Local scorer used when no LLM is configured."""

    def __init__(self, rules: Dict[str, Any] = None):
        self.rules = rules or default_rules

    async def score(self, context: RiskContext) -> RiskAssessment:
        result = score_transaction(context, self.rules)
        if result["reasons"]:
            reason = f"{result['level'].title()} risk: " + "; ".join(result["reasons"]) + "."
        else:
            reason = "No risk indicators found."
        return RiskAssessment(risk_score=result["risk_score"], risk_reason=reason)


class RuleBasedFraudExplainer(FraudExplainer):
    async def explain(self, context: FraudReportContext) -> FraudAnalysis:
        result = assess_fraud_report(context)
        if result["fraudulent"]:
            reason = "Likely fraud: " + "; ".join(result["reasons"]) + "."
        else:
            reason = "No clear fraud indicators found; the report has been recorded for manual review."
        return FraudAnalysis(fraudulent=result["fraudulent"], reason=reason)
