"""
External scoring boundaries: transfer risk scoring and fraud-report analysis.

Both are black boxes to the transfer pipeline. Any failure surfaces as
``RiskScorerError`` / ``FraudExplainerError``.
"""
import logging
from abc import ABC, abstractmethod

from app.schemas.risk import FraudAnalysis, FraudReportContext, RiskAssessment, RiskContext
from app.services.exceptions import FraudExplainerError, LLMError, RiskScorerError
from app.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

RISK_PROMPT = """You are a financial fraud detection expert. Analyze the following transaction based on the provided details and the sender's history. Provide a risk score from 0 (low) to 100 (high) and a brief reason.

Consider these factors:
- Is the transaction amount significantly higher than the sender's average?
- Is the transaction description suspicious (e.g. "urgent", "verify account", "unlock")?
- Does the sender's history show a sudden increase in transaction frequency or amount?

Transaction Details: {transaction_details}
Sender History: {sender_history}

Respond with only a JSON object: {{"risk_score": <integer 0-100>, "risk_reason": "<brief explanation>"}}
"""

FRAUD_REPORT_PROMPT = """You are a financial fraud investigator. A user has reported the transaction below as fraudulent. Decide whether the report describes likely fraud (for example an unauthorized transfer, a scam, impersonation or goods never delivered) and explain your reasoning in one or two sentences.

Transaction Details: {transaction_details}
User Report: {user_report}

Respond with only a JSON object: {{"fraudulent": <true or false>, "reason": "<brief explanation>"}}
"""


class RiskScorer(ABC):
    @abstractmethod
    async def score(self, context: RiskContext) -> RiskAssessment:
        ...


class FraudExplainer(ABC):
    @abstractmethod
    async def explain(self, context: FraudReportContext) -> FraudAnalysis:
        ...


class LLMRiskScorer(RiskScorer):
    def __init__(self, client: LLMClient):
        self.client = client

    async def score(self, context: RiskContext) -> RiskAssessment:
        prompt = RISK_PROMPT.format(
            transaction_details=context.transaction_summary,
            sender_history=context.history_summary,
        )
        try:
            return await self.client.structured(prompt, RiskAssessment)
        except LLMError as e:
            raise RiskScorerError(f"Risk scoring failed: {e}") from e


class LLMFraudExplainer(FraudExplainer):
    def __init__(self, client: LLMClient):
        self.client = client

    async def explain(self, context: FraudReportContext) -> FraudAnalysis:
        prompt = FRAUD_REPORT_PROMPT.format(
            transaction_details=context.transaction_summary,
            user_report=context.user_report,
        )
        try:
            return await self.client.structured(prompt, FraudAnalysis)
        except LLMError as e:
            raise FraudExplainerError(f"Fraud report analysis failed: {e}") from e
