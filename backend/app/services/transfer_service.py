"""
Transfer orchestration: validation, fraud heuristics, risk scoring and the
atomic ledger commit, plus fraud reporting on existing transactions.
"""
import asyncio
import logging
import os
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.schemas.risk import FraudReportContext, RiskContext
from app.schemas.transaction import (
    FraudReportResult,
    TransactionRead,
    TransactionView,
    TransferResult,
    UserHistory,
)
from app.schemas.user import UserProfile, UserRead
from app.services import fraud_gate
from app.services.account_locks import AccountLocks
from app.services.alert_service import HIGH_RISK_ALERT_THRESHOLD, trigger_alert
from app.services.exceptions import (
    ExternalServiceError,
    FraudWarning,
    InsufficientFundsError,
    TransferFailure,
    TransferValidationError,
    UserNotFoundError,
)
from app.services.ledger_store import LedgerStore
from app.services.risk_scorer import FraudExplainer, RiskScorer
from app.services.transfer_validator import validate_transfer

logger = logging.getLogger(__name__)

EXTERNAL_TIMEOUT_SECONDS = float(os.getenv("RISK_SCORER_TIMEOUT_SECONDS", "10"))

SUCCESS_MESSAGE = "Transaction successful."
RISK_UNAVAILABLE_MESSAGE = "Risk assessment unavailable. Please try again later."
REPORT_NOT_FOUND_MESSAGE = "Transaction not found."
REPORT_SUCCESS_MESSAGE = "Fraud report submitted and analyzed."
REPORT_FAILED_MESSAGE = "Failed to analyze fraud report."


def _failure(failure: TransferFailure) -> TransferResult:
    return TransferResult(success=False, message=failure.value, code=failure.name)


class TransferService:
    def __init__(
        self,
        store: LedgerStore,
        risk_scorer: RiskScorer,
        fraud_explainer: FraudExplainer,
        rules: Optional[Dict[str, Any]] = None,
        timeout: float = EXTERNAL_TIMEOUT_SECONDS,
        high_risk_threshold: int = HIGH_RISK_ALERT_THRESHOLD,
    ):
        self.store = store
        self.risk_scorer = risk_scorer
        self.fraud_explainer = fraud_explainer
        self.rules = rules or dict(fraud_gate.default_rules)
        self.timeout = timeout
        self.high_risk_threshold = high_risk_threshold
        self.locks = AccountLocks()

    async def add_user(self, profile: UserProfile) -> UserRead:
        return await self.store.add_user(profile)

    async def get_user(self, uid: str) -> Optional[UserRead]:
        return await self.store.find_user_by("uid", uid)

    async def get_transactions(self, uid: str) -> List[TransactionView]:
        return await self.store.transactions_for_user(uid)

    async def get_history(self, uid: str) -> UserHistory:
        return await self.store.history_stats(uid)

    async def get_transaction(self, transaction_id: str) -> Optional[TransactionRead]:
        return await self.store.find_transaction_by_id(transaction_id)

    async def send_money(
        self,
        sender_uid: str,
        receiver_account_number: str,
        amount: Decimal,
        description: str,
        bypass_warning: bool = False,
    ) -> TransferResult:
        # Account numbers never change, so the receiver can be resolved before locking
        receiver = await self.store.find_user_by("account_number", receiver_account_number)
        async with self.locks.hold([sender_uid, receiver.uid if receiver else None]):
            return await self._send_locked(sender_uid, receiver_account_number, amount, description, bypass_warning)

    async def _send_locked(
        self,
        sender_uid: str,
        receiver_account_number: str,
        amount: Decimal,
        description: str,
        bypass_warning: bool,
    ) -> TransferResult:
        try:
            sender, receiver = await validate_transfer(self.store, sender_uid, receiver_account_number, amount)
        except TransferValidationError as e:
            logger.info("Transfer from %s rejected: %s", sender_uid, e.code)
            return TransferResult(success=False, message=e.message, code=e.code)

        sender_history = await self.store.history_stats(sender.uid)

        if not bypass_warning:
            try:
                fraud_gate.evaluate(sender_history, amount, self.rules)
            except FraudWarning as w:
                trigger_alert("fraud_warning", f"{w.code} warning for user {sender.uid} (amount: {amount})")
                return TransferResult(success=False, warning=True, message=w.message, code=w.code)

        context = RiskContext(
            amount=amount,
            receiver_name=receiver.name,
            description=description,
            total_transactions=len(sender_history.transactions),
            average_amount=sender_history.avg_amount,
        )
        try:
            risk = await asyncio.wait_for(self.risk_scorer.score(context), timeout=self.timeout)
        except (ExternalServiceError, asyncio.TimeoutError) as e:
            logger.warning("Risk assessment failed for transfer from %s: %r", sender.uid, e)
            trigger_alert("risk_assessment_unavailable", f"Transfer from user {sender.uid} not scored: {e!r}")
            return TransferResult(success=False, message=RISK_UNAVAILABLE_MESSAGE, code="RiskAssessmentUnavailable")

        try:
            txn = await self.store.commit_transfer(sender.uid, receiver.uid, amount, description, risk)
        except InsufficientFundsError:
            return _failure(TransferFailure.InsufficientBalance)
        except UserNotFoundError as e:
            if e.uid == sender.uid:
                return _failure(TransferFailure.SenderNotFound)
            return _failure(TransferFailure.ReceiverNotFound)

        if risk.risk_score >= self.high_risk_threshold:
            trigger_alert(
                "high_risk_transaction",
                f"Transaction {txn.id} from user {sender.uid} scored {risk.risk_score}: {risk.risk_reason}",
            )
        logger.info(
            "Transfer %s committed: %s -> %s amount=%s risk=%s",
            txn.id, sender.uid, receiver.uid, amount, risk.risk_score,
        )
        return TransferResult(success=True, message=SUCCESS_MESSAGE, transaction_id=txn.id)

    async def report_transaction_as_fraud(self, transaction_id: str, user_report: str) -> FraudReportResult:
        transaction = await self.store.find_transaction_by_id(transaction_id)
        if transaction is None:
            return FraudReportResult(success=False, message=REPORT_NOT_FOUND_MESSAGE)

        context = FraudReportContext(transaction=transaction, user_report=user_report)
        try:
            analysis = await asyncio.wait_for(self.fraud_explainer.explain(context), timeout=self.timeout)
        except (ExternalServiceError, asyncio.TimeoutError):
            logger.exception("AI fraud analysis failed for transaction %s", transaction_id)
            return FraudReportResult(success=False, message=REPORT_FAILED_MESSAGE)

        await self.store.set_fraud_reported(transaction_id, analysis.reason)
        if analysis.fraudulent:
            trigger_alert("fraud_reported", f"Transaction {transaction_id} reported as fraud: {analysis.reason}")
        logger.info("Fraud report for %s analyzed (fraudulent=%s)", transaction_id, analysis.fraudulent)
        return FraudReportResult(
            success=True,
            message=REPORT_SUCCESS_MESSAGE,
            fraudulent=analysis.fraudulent,
            reason=analysis.reason,
        )
