from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean
from app.models.user import Base
import enum
from datetime import datetime, timezone

class TransactionStatus(enum.Enum):
    completed = "completed"
    pending = "pending"
    failed = "failed"

class Transaction(Base):
    __tablename__ = "transactions"
    # Insertion order, used to keep ordering stable when timestamps tie
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, unique=True, index=True, nullable=False)
    sender_uid = Column(String, index=True, nullable=False)
    sender_name = Column(String, nullable=False)
    sender_email = Column(String, nullable=False)
    receiver_uid = Column(String, index=True, nullable=False)
    receiver_name = Column(String, nullable=False)
    receiver_email = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    date = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    description = Column(String, nullable=False)
    status = Column(String, default=TransactionStatus.completed.value, nullable=False)
    fraud_reported = Column(Boolean, default=False, nullable=False)
    fraud_reason = Column(String, nullable=True)
    risk_score = Column(Integer, nullable=True)
    risk_reason = Column(String, nullable=True)
