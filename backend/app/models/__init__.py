from app.models.user import Base, User
from app.models.transaction import Transaction, TransactionStatus

__all__ = ["Base", "User", "Transaction", "TransactionStatus"]
