from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from decimal import Decimal

class UserProfile(BaseModel):
    """Identity as handed over by the authentication provider."""
    uid: str = Field(min_length=1)
    email: EmailStr
    name: str = "Anonymous"
    photo_url: Optional[str] = None

class UserHistorySummary(BaseModel):
    total_transactions: int = 0
    average_amount: Decimal = Decimal("0")

class UserRead(BaseModel):
    uid: str
    email: str
    name: str
    photo_url: Optional[str] = None
    account_number: Optional[str] = None
    balance: Decimal
    role: str = "user"
    history: Optional[UserHistorySummary] = None

    class Config:
        from_attributes = True
