#!/usr/bin/env python3
"""
Database initialization script for PeerPay
Creates the ledger tables in PostgreSQL and optionally adds demo users
"""
import argparse
import asyncio
import os
from decimal import Decimal

from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.database import init_models
from app.schemas.user import UserProfile
from app.services.sql_ledger_store import SqlLedgerStore

# Load environment variables
load_dotenv()

DEMO_USERS = [
    UserProfile(uid="demo-alice", email="alice@example.com", name="Alice Demo"),
    UserProfile(uid="demo-bob", email="bob@example.com", name="Bob Demo"),
]


async def create_sample_data(store: SqlLedgerStore):
    """Create demo users and one transfer between them"""
    print("👤 Creating demo users...")
    users = [await store.add_user(profile) for profile in DEMO_USERS]
    for user in users:
        print(f"✅ {user.name}: account {user.account_number}, balance {user.balance}")

    sender, receiver = users
    if await store.transactions_for_user(sender.uid):
        print("✅ Sample transactions already exist")
        return

    txn = await store.commit_transfer(sender.uid, receiver.uid, Decimal("25.00"), "Welcome coffee")
    print(f"💳 Created sample transaction {txn.id}")


async def create_tables(seed: bool):
    """Create all database tables"""
    postgres_uri = os.getenv("POSTGRES_URI")
    if not postgres_uri:
        print("❌ POSTGRES_URI not found in environment variables")
        return

    engine = create_async_engine(postgres_uri, echo=os.getenv("SQL_ECHO", "false").lower() == "true")
    try:
        print("📝 Creating tables...")
        await init_models(engine)
        print("✅ All tables created successfully!")

        if seed:
            sessionmaker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
            await create_sample_data(SqlLedgerStore(sessionmaker))
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the PeerPay database")
    parser.add_argument("--seed", action="store_true", help="add demo users and a sample transfer")
    args = parser.parse_args()
    print("🚀 Initializing PeerPay database...")
    asyncio.run(create_tables(args.seed))
    print("🎉 Database initialization complete!")
