import os
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from dotenv import load_dotenv

from app.models import Base

# Load environment variables
load_dotenv()

# PostgreSQL Database (optional; the in-memory ledger is used when unset)
POSTGRES_URI = os.getenv("POSTGRES_URI")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"
if POSTGRES_URI:
    engine = create_async_engine(POSTGRES_URI, echo=SQL_ECHO)
    AsyncSessionLocal = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False
    )
else:
    engine = None
    AsyncSessionLocal = None


async def init_models(bind=None):
    """Create the ledger tables if they do not exist yet."""
    bind = bind or engine
    if bind is None:
        return
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
