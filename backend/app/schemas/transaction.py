from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal
import enum

class TransactionDirection(str, enum.Enum):
    sent = "sent"
    received = "received"

class Party(BaseModel):
    uid: str
    name: str
    email: str

class TransactionCreate(BaseModel):
    sender: Party
    receiver: Party
    amount: Decimal
    date: datetime
    description: str
    status: Literal["completed", "pending", "failed"] = "completed"
    fraud_reported: bool = False
    fraud_reason: Optional[str] = None
    risk_score: Optional[int] = None
    risk_reason: Optional[str] = None

class TransactionRead(TransactionCreate):
    id: str

    class Config:
        from_attributes = True

class TransactionView(TransactionRead):
    # Relative to whoever asked; never persisted
    type: TransactionDirection

class TransactionListResponse(BaseModel):
    transactions: List[TransactionView]

class UserHistory(BaseModel):
    avg_amount: Decimal
    transactions: List[TransactionView]

class TransferRequest(BaseModel):
    receiver_account_number: str = Field(pattern=r"^[A-Za-z0-9]{6}$")
    amount: Decimal = Field(decimal_places=2)
    description: str = Field(min_length=1)
    bypass_warning: bool = False

class TransferResult(BaseModel):
    success: bool
    message: str
    warning: Optional[bool] = None
    code: Optional[str] = None
    transaction_id: Optional[str] = None

class FraudReportRequest(BaseModel):
    user_report: str = Field(min_length=1)

class FraudReportResult(BaseModel):
    success: bool
    message: str
    fraudulent: Optional[bool] = None
    reason: Optional[str] = None
