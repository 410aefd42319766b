"""
Builds the service graph once per process and hands it to route handlers.
"""
import logging
from fastapi import Request

from app.database import AsyncSessionLocal
from app.services.ledger_store import InMemoryLedgerStore, LedgerStore
from app.services.llm_client import ANTHROPIC_API_KEY, LLMClient
from app.services.risk_engine import RuleBasedFraudExplainer, RuleBasedRiskScorer
from app.services.risk_scorer import LLMFraudExplainer, LLMRiskScorer
from app.services.sql_ledger_store import SqlLedgerStore
from app.services.transfer_service import TransferService

logger = logging.getLogger(__name__)


def build_ledger_store() -> LedgerStore:
    if AsyncSessionLocal is not None:
        logger.info("Using SQL ledger store")
        return SqlLedgerStore(AsyncSessionLocal)
    logger.info("POSTGRES_URI not set; using in-memory ledger store")
    return InMemoryLedgerStore()


def build_transfer_service(store: LedgerStore | None = None) -> TransferService:
    store = store or build_ledger_store()
    if ANTHROPIC_API_KEY:
        client = LLMClient(ANTHROPIC_API_KEY)
        return TransferService(store, LLMRiskScorer(client), LLMFraudExplainer(client))
    logger.warning("ANTHROPIC_API_KEY not set; falling back to rule-based risk scoring")
    return TransferService(store, RuleBasedRiskScorer(), RuleBasedFraudExplainer())


def get_transfer_service(request: Request) -> TransferService:
    return request.app.state.transfer_service
