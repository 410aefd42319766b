"""
Test configuration and fixtures for PeerPay backend tests.
"""
import os

# Set test environment BEFORE any imports
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_UIDS"] = "admin-uid"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-for-testing-only-0123456789")
# Keep the in-memory ledger and the local scorers
os.environ.pop("POSTGRES_URI", None)
os.environ.pop("ANTHROPIC_API_KEY", None)
os.environ.pop("AUTH_PROVIDER_SECRET", None)

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.dependencies import get_transfer_service
from app.main import app
from app.schemas.risk import FraudAnalysis, FraudReportContext, RiskAssessment, RiskContext
from app.schemas.transaction import Party, TransactionCreate
from app.schemas.user import UserProfile, UserRead
from app.services import alert_service
from app.services.exceptions import FraudExplainerError, RiskScorerError
from app.services.ledger_store import InMemoryLedgerStore, LedgerStore
from app.services.risk_scorer import FraudExplainer, RiskScorer
from app.services.token_service import create_access_token
from app.services.transfer_service import TransferService


class FakeRiskScorer(RiskScorer):
    """Records what it was asked and answers with a fixed assessment."""

    def __init__(self, risk_score: int = 12, risk_reason: str = "Looks routine."):
        self.assessment = RiskAssessment(risk_score=risk_score, risk_reason=risk_reason)
        self.contexts: List[RiskContext] = []
        self.error: Optional[Exception] = None
        self.delay: float = 0

    async def score(self, context: RiskContext) -> RiskAssessment:
        self.contexts.append(context)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.assessment


class FakeFraudExplainer(FraudExplainer):
    def __init__(self, fraudulent: bool = True, reason: str = "Recipient matches a known scam pattern."):
        self.analysis = FraudAnalysis(fraudulent=fraudulent, reason=reason)
        self.contexts: List[FraudReportContext] = []
        self.error: Optional[Exception] = None

    async def explain(self, context: FraudReportContext) -> FraudAnalysis:
        self.contexts.append(context)
        if self.error is not None:
            raise self.error
        return self.analysis


async def make_user(store: LedgerStore, uid: str, balance: Optional[Decimal] = None) -> UserRead:
    user = await store.add_user(UserProfile(uid=uid, email=f"{uid}@example.com", name=uid.title()))
    if balance is not None:
        await store.update_user_balance(uid, balance)
        user = await store.find_user_by("uid", uid)
    return user


async def seed_transfer(
    store: LedgerStore,
    sender: UserRead,
    receiver: UserRead,
    amount: Decimal,
    age: timedelta = timedelta(hours=2),
    description: str = "Seeded transfer",
):
    """Append a historical transaction without moving any money."""
    record = TransactionCreate(
        sender=Party(uid=sender.uid, name=sender.name, email=sender.email),
        receiver=Party(uid=receiver.uid, name=receiver.name, email=receiver.email),
        amount=amount,
        date=datetime.now(timezone.utc) - age,
        description=description,
    )
    return await store.add_transaction(record)


@pytest.fixture(autouse=True)
def clear_alerts():
    alert_service.clear_alerts()
    yield
    alert_service.clear_alerts()


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def risk_scorer() -> FakeRiskScorer:
    return FakeRiskScorer()


@pytest.fixture
def fraud_explainer() -> FakeFraudExplainer:
    return FakeFraudExplainer()


@pytest.fixture
def service(store, risk_scorer, fraud_explainer) -> TransferService:
    return TransferService(store, risk_scorer, fraud_explainer, timeout=0.5)


@pytest_asyncio.fixture
async def alice(store) -> UserRead:
    return await make_user(store, "alice")


@pytest_asyncio.fixture
async def bob(store) -> UserRead:
    return await make_user(store, "bob")


@pytest.fixture
def client(service):
    """Synchronous test client wired to the per-test service."""
    app.dependency_overrides[get_transfer_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(uid: str, role: str = "user") -> Dict[str, str]:
    token = create_access_token({"uid": uid, "email": f"{uid}@example.com", "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def scorer_failure() -> Exception:
    return RiskScorerError("upstream returned 503")


@pytest.fixture
def explainer_failure() -> Exception:
    return FraudExplainerError("upstream returned 503")
