from sqlalchemy import Column, Integer, String, Numeric
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class User(Base):
    __tablename__ = "users"
    uid = Column(String, primary_key=True, index=True)
    email = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    photo_url = Column(String, nullable=True)
    account_number = Column(String(6), unique=True, index=True, nullable=True)
    balance = Column(Numeric(14, 2), nullable=False)
    role = Column(String, default="user", nullable=False)
    # Persisted history summary, recomputed from sent transactions on every balance write
    total_transactions = Column(Integer, nullable=True)
    average_amount = Column(Numeric(14, 4), nullable=True)
