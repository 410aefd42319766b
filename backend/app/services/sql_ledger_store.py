"""
SQLAlchemy-backed ledger. Each mutation runs in its own database transaction;
``commit_transfer`` locks both user rows (in uid order) before touching them.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Transaction, User
from app.schemas.risk import RiskAssessment
from app.schemas.transaction import Party, TransactionCreate, TransactionRead, TransactionView
from app.schemas.user import UserHistorySummary, UserProfile, UserRead
from app.services import history
from app.services.exceptions import InsufficientFundsError, UserNotFoundError
from app.services.ledger_store import (
    STARTING_BALANCE,
    LedgerStore,
    build_transfer_record,
    check_lookup_field,
    check_transaction_record,
    generate_account_number,
    generate_transaction_id,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; everything is written in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _user_from_row(row: User) -> UserRead:
    summary = None
    if row.total_transactions is not None and row.average_amount is not None:
        summary = UserHistorySummary(
            total_transactions=row.total_transactions,
            average_amount=Decimal(row.average_amount),
        )
    return UserRead(
        uid=row.uid,
        email=row.email,
        name=row.name,
        photo_url=row.photo_url,
        account_number=row.account_number,
        balance=Decimal(row.balance),
        role=row.role,
        history=summary,
    )


def _transaction_from_row(row: Transaction) -> TransactionRead:
    return TransactionRead(
        id=row.id,
        sender=Party(uid=row.sender_uid, name=row.sender_name, email=row.sender_email),
        receiver=Party(uid=row.receiver_uid, name=row.receiver_name, email=row.receiver_email),
        amount=Decimal(row.amount),
        date=_as_utc(row.date),
        description=row.description,
        status=row.status,
        fraud_reported=bool(row.fraud_reported),
        fraud_reason=row.fraud_reason,
        risk_score=row.risk_score,
        risk_reason=row.risk_reason,
    )


def _row_from_record(record: TransactionCreate, transaction_id: str) -> Transaction:
    return Transaction(
        id=transaction_id,
        sender_uid=record.sender.uid,
        sender_name=record.sender.name,
        sender_email=record.sender.email,
        receiver_uid=record.receiver.uid,
        receiver_name=record.receiver.name,
        receiver_email=record.receiver.email,
        amount=record.amount,
        date=record.date,
        description=record.description,
        status=record.status,
        fraud_reported=record.fraud_reported,
        fraud_reason=record.fraud_reason,
        risk_score=record.risk_score,
        risk_reason=record.risk_reason,
    )


class SqlLedgerStore(LedgerStore):
    def __init__(self, sessionmaker: async_sessionmaker, starting_balance: Decimal = STARTING_BALANCE):
        self._sessionmaker = sessionmaker
        self.starting_balance = starting_balance

    async def _user_row(self, session: AsyncSession, field: str, value: str, for_update: bool = False) -> Optional[User]:
        check_lookup_field(field)
        column = getattr(User, field)
        if field == "uid":
            stmt = select(User).where(column == value)
        else:
            stmt = select(User).where(func.lower(column) == value.lower())
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalars().first()

    async def _transaction_row(self, session: AsyncSession, transaction_id: str) -> Optional[Transaction]:
        result = await session.execute(select(Transaction).where(Transaction.id == transaction_id))
        return result.scalar_one_or_none()

    async def _log_for_user(self, session: AsyncSession, uid: str) -> List[TransactionRead]:
        result = await session.execute(
            select(Transaction)
            .where(or_(Transaction.sender_uid == uid, Transaction.receiver_uid == uid))
            .order_by(Transaction.seq.desc())
        )
        return [_transaction_from_row(row) for row in result.scalars().all()]

    async def _refresh_history(self, session: AsyncSession, row: User) -> None:
        summary = history.history_summary(await self._log_for_user(session, row.uid), row.uid)
        row.total_transactions = summary.total_transactions
        row.average_amount = summary.average_amount

    async def _unique_account_number(self, session: AsyncSession) -> str:
        account_number = generate_account_number()
        while await self._user_row(session, "account_number", account_number) is not None:
            account_number = generate_account_number()
        return account_number

    async def find_user_by(self, field: str, value: str) -> Optional[UserRead]:
        async with self._sessionmaker() as session:
            row = await self._user_row(session, field, value)
            return _user_from_row(row) if row else None

    async def add_user(self, profile: UserProfile) -> UserRead:
        async with self._sessionmaker() as session, session.begin():
            row = await self._user_row(session, "uid", profile.uid, for_update=True)
            if row is not None:
                if not row.account_number:
                    row.account_number = await self._unique_account_number(session)
                if row.total_transactions is None or row.average_amount is None:
                    row.total_transactions = 0
                    row.average_amount = Decimal("0")
                await session.flush()
                return _user_from_row(row)

            row = User(
                uid=profile.uid,
                email=profile.email,
                name=profile.name,
                photo_url=profile.photo_url,
                account_number=await self._unique_account_number(session),
                balance=self.starting_balance,
                role="user",
                total_transactions=0,
                average_amount=Decimal("0"),
            )
            session.add(row)
            await session.flush()
            logger.info("New user added: uid=%s account=%s", row.uid, row.account_number)
            return _user_from_row(row)

    async def update_user_balance(self, uid: str, new_balance: Decimal) -> bool:
        if new_balance < 0:
            raise ValueError("Balance cannot be negative")
        async with self._sessionmaker() as session, session.begin():
            row = await self._user_row(session, "uid", uid, for_update=True)
            if row is None:
                return False
            row.balance = new_balance
            await self._refresh_history(session, row)
            return True

    async def add_transaction(self, record: TransactionCreate) -> TransactionRead:
        check_transaction_record(record)
        async with self._sessionmaker() as session, session.begin():
            row = _row_from_record(record, generate_transaction_id())
            session.add(row)
            await session.flush()
            for uid in sorted({record.sender.uid, record.receiver.uid}):
                user_row = await self._user_row(session, "uid", uid, for_update=True)
                if user_row is not None:
                    await self._refresh_history(session, user_row)
            return _transaction_from_row(row)

    async def find_transaction_by_id(self, transaction_id: str) -> Optional[TransactionRead]:
        async with self._sessionmaker() as session:
            row = await self._transaction_row(session, transaction_id)
            return _transaction_from_row(row) if row else None

    async def set_fraud_reported(self, transaction_id: str, reason: str) -> bool:
        async with self._sessionmaker() as session, session.begin():
            row = await self._transaction_row(session, transaction_id)
            if row is None:
                return False
            row.fraud_reported = True
            row.fraud_reason = reason
            return True

    async def transactions_for_user(self, uid: str) -> List[TransactionView]:
        async with self._sessionmaker() as session:
            return history.transactions_for_user(await self._log_for_user(session, uid), uid)

    async def commit_transfer(
        self,
        sender_uid: str,
        receiver_uid: str,
        amount: Decimal,
        description: str,
        risk: Optional[RiskAssessment] = None,
    ) -> TransactionRead:
        async with self._sessionmaker() as session, session.begin():
            rows = {}
            for uid in sorted({sender_uid, receiver_uid}):
                rows[uid] = await self._user_row(session, "uid", uid, for_update=True)
            sender, receiver = rows.get(sender_uid), rows.get(receiver_uid)
            if sender is None:
                raise UserNotFoundError(sender_uid)
            if receiver is None:
                raise UserNotFoundError(receiver_uid)
            if Decimal(sender.balance) < amount:
                raise InsufficientFundsError(sender_uid)

            record = build_transfer_record(_user_from_row(sender), _user_from_row(receiver), amount, description, risk)
            check_transaction_record(record)
            sender.balance = Decimal(sender.balance) - amount
            receiver.balance = Decimal(receiver.balance) + amount
            row = _row_from_record(record, generate_transaction_id())
            session.add(row)
            await session.flush()
            await self._refresh_history(session, sender)
            await self._refresh_history(session, receiver)
            return _transaction_from_row(row)
