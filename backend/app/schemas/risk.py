from pydantic import AliasChoices, BaseModel, Field
from decimal import Decimal
from app.schemas.transaction import TransactionRead

class RiskAssessment(BaseModel):
    risk_score: int = Field(ge=0, le=100, validation_alias=AliasChoices("risk_score", "riskScore"))
    risk_reason: str = Field(validation_alias=AliasChoices("risk_reason", "riskReason"))

class FraudAnalysis(BaseModel):
    fraudulent: bool
    reason: str

class RiskContext(BaseModel):
    """What a risk scorer gets to see about a pending transfer."""
    amount: Decimal
    receiver_name: str
    description: str
    total_transactions: int
    average_amount: Decimal

    @property
    def transaction_summary(self) -> str:
        return f"Amount: ${self.amount}, To: {self.receiver_name}, Description: {self.description}"

    @property
    def history_summary(self) -> str:
        return (
            f"User has made {self.total_transactions} transactions "
            f"with an average amount of ${self.average_amount:.2f}."
        )

class FraudReportContext(BaseModel):
    transaction: TransactionRead
    user_report: str

    @property
    def transaction_summary(self) -> str:
        txn = self.transaction
        return (
            f"Amount: {txn.amount}, To: {txn.receiver.name}, From: {txn.sender.name}, "
            f"Date: {txn.date.isoformat()}, Description: {txn.description}"
        )
