"""
Ledger storage: users, balances and the transaction log.

``LedgerStore`` is the interface the transfer pipeline is written against.
``InMemoryLedgerStore`` keeps everything in process memory behind a single
asyncio lock; ``app.services.sql_ledger_store.SqlLedgerStore`` persists the
same data through SQLAlchemy.
"""
import asyncio
import logging
import os
import secrets
import string
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from app.schemas.risk import RiskAssessment
from app.schemas.transaction import Party, TransactionCreate, TransactionRead, TransactionView, UserHistory
from app.schemas.user import UserHistorySummary, UserProfile, UserRead
from app.services import history
from app.services.exceptions import InsufficientFundsError, UserNotFoundError

logger = logging.getLogger(__name__)

ACCOUNT_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
ACCOUNT_NUMBER_LENGTH = 6
STARTING_BALANCE = Decimal(os.getenv("STARTING_BALANCE", "1000.00"))
USER_LOOKUP_FIELDS = ("uid", "email", "account_number")
CENT = Decimal("0.01")


def generate_account_number() -> str:
    return "".join(secrets.choice(ACCOUNT_NUMBER_ALPHABET) for _ in range(ACCOUNT_NUMBER_LENGTH))


def generate_transaction_id() -> str:
    # Millisecond clock plus a random suffix: same-millisecond calls still differ
    return f"txn-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def is_whole_cents(amount: Decimal) -> bool:
    return amount % CENT == 0


def check_lookup_field(field: str) -> None:
    if field not in USER_LOOKUP_FIELDS:
        raise ValueError(f"Cannot look users up by {field!r}; expected one of {USER_LOOKUP_FIELDS}")


def check_transaction_record(record: TransactionCreate) -> None:
    if record.amount <= 0:
        raise ValueError("Transaction amount must be positive")
    if not is_whole_cents(record.amount):
        raise ValueError("Transaction amount must be a whole number of cents")
    if record.sender.uid == record.receiver.uid:
        raise ValueError("Transaction sender and receiver must differ")


def build_transfer_record(
    sender: UserRead,
    receiver: UserRead,
    amount: Decimal,
    description: str,
    risk: Optional[RiskAssessment] = None,
) -> TransactionCreate:
    return TransactionCreate(
        sender=Party(uid=sender.uid, name=sender.name, email=sender.email),
        receiver=Party(uid=receiver.uid, name=receiver.name, email=receiver.email),
        amount=amount,
        date=datetime.now(timezone.utc),
        description=description,
        status="completed",
        risk_score=risk.risk_score if risk else None,
        risk_reason=risk.risk_reason if risk else None,
    )


class LedgerStore(ABC):
    """Data access for users and transactions."""

    @abstractmethod
    async def find_user_by(self, field: str, value: str) -> Optional[UserRead]:
        """Look a user up by ``uid`` (exact) or ``email``/``account_number`` (case-insensitive)."""

    @abstractmethod
    async def add_user(self, profile: UserProfile) -> UserRead:
        """Create the user, or return the existing one with missing fields backfilled."""

    @abstractmethod
    async def update_user_balance(self, uid: str, new_balance: Decimal) -> bool:
        """Set the balance and recompute the persisted history summary."""

    @abstractmethod
    async def add_transaction(self, record: TransactionCreate) -> TransactionRead:
        ...

    @abstractmethod
    async def find_transaction_by_id(self, transaction_id: str) -> Optional[TransactionRead]:
        ...

    @abstractmethod
    async def set_fraud_reported(self, transaction_id: str, reason: str) -> bool:
        """Flag a transaction as reported. A second call overwrites the reason."""

    @abstractmethod
    async def transactions_for_user(self, uid: str) -> List[TransactionView]:
        ...

    @abstractmethod
    async def commit_transfer(
        self,
        sender_uid: str,
        receiver_uid: str,
        amount: Decimal,
        description: str,
        risk: Optional[RiskAssessment] = None,
    ) -> TransactionRead:
        """Debit, credit and record a completed transfer as one unit.

        Raises ``UserNotFoundError`` or ``InsufficientFundsError`` without
        touching any balance.
        """

    async def history_stats(self, uid: str) -> UserHistory:
        return history.history_stats(await self.transactions_for_user(uid), uid)


class InMemoryLedgerStore(LedgerStore):
    def __init__(self, starting_balance: Decimal = STARTING_BALANCE):
        self.starting_balance = starting_balance
        self._users: Dict[str, UserRead] = {}
        # Newest first
        self._transactions: List[TransactionRead] = []
        self._lock = asyncio.Lock()

    def _lookup(self, field: str, value: str) -> Optional[UserRead]:
        check_lookup_field(field)
        if field == "uid":
            return self._users.get(value)
        query = value.lower()
        for user in self._users.values():
            candidate = getattr(user, field) or ""
            if candidate.lower() == query:
                return user
        return None

    def _unique_account_number(self) -> str:
        account_number = generate_account_number()
        while self._lookup("account_number", account_number) is not None:
            account_number = generate_account_number()
        return account_number

    def _refresh_history(self, uid: str) -> None:
        user = self._users.get(uid)
        if user is not None:
            user.history = history.history_summary(self._transactions, uid)

    def _append(self, record: TransactionCreate) -> TransactionRead:
        check_transaction_record(record)
        taken = {t.id for t in self._transactions}
        transaction_id = generate_transaction_id()
        while transaction_id in taken:
            transaction_id = generate_transaction_id()
        txn = TransactionRead(id=transaction_id, **record.model_dump())
        self._transactions.insert(0, txn)
        self._refresh_history(record.sender.uid)
        self._refresh_history(record.receiver.uid)
        return txn

    async def find_user_by(self, field: str, value: str) -> Optional[UserRead]:
        user = self._lookup(field, value)
        return user.model_copy(deep=True) if user else None

    async def add_user(self, profile: UserProfile) -> UserRead:
        async with self._lock:
            existing = self._users.get(profile.uid)
            if existing is not None:
                if not existing.account_number:
                    existing.account_number = self._unique_account_number()
                if existing.history is None:
                    existing.history = UserHistorySummary()
                return existing.model_copy(deep=True)

            user = UserRead(
                uid=profile.uid,
                email=profile.email,
                name=profile.name,
                photo_url=profile.photo_url,
                account_number=self._unique_account_number(),
                balance=self.starting_balance,
                history=UserHistorySummary(),
            )
            self._users[user.uid] = user
            logger.info("New user added: uid=%s account=%s", user.uid, user.account_number)
            return user.model_copy(deep=True)

    async def update_user_balance(self, uid: str, new_balance: Decimal) -> bool:
        if new_balance < 0:
            raise ValueError("Balance cannot be negative")
        async with self._lock:
            user = self._users.get(uid)
            if user is None:
                return False
            user.balance = new_balance
            self._refresh_history(uid)
            return True

    async def add_transaction(self, record: TransactionCreate) -> TransactionRead:
        async with self._lock:
            return self._append(record).model_copy(deep=True)

    async def find_transaction_by_id(self, transaction_id: str) -> Optional[TransactionRead]:
        for txn in self._transactions:
            if txn.id == transaction_id:
                return txn.model_copy(deep=True)
        return None

    async def set_fraud_reported(self, transaction_id: str, reason: str) -> bool:
        async with self._lock:
            for txn in self._transactions:
                if txn.id == transaction_id:
                    txn.fraud_reported = True
                    txn.fraud_reason = reason
                    return True
            return False

    async def transactions_for_user(self, uid: str) -> List[TransactionView]:
        return history.transactions_for_user(self._transactions, uid)

    async def commit_transfer(
        self,
        sender_uid: str,
        receiver_uid: str,
        amount: Decimal,
        description: str,
        risk: Optional[RiskAssessment] = None,
    ) -> TransactionRead:
        async with self._lock:
            sender = self._users.get(sender_uid)
            if sender is None:
                raise UserNotFoundError(sender_uid)
            receiver = self._users.get(receiver_uid)
            if receiver is None:
                raise UserNotFoundError(receiver_uid)
            if sender.balance < amount:
                raise InsufficientFundsError(sender_uid)

            record = build_transfer_record(sender, receiver, amount, description, risk)
            check_transaction_record(record)
            # Nothing below awaits, so the three writes land together
            sender.balance -= amount
            receiver.balance += amount
            txn = self._append(record)
            return txn.model_copy(deep=True)
