import asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
import logging

from tracker.core.config import settings
from .models import Base

logger = logging.getLogger(__name__)


async def _test_connection(engine):
    """Helper function to test database connection with retries"""
    max_retries = 3
    retry_delays = [1, 2, 4]

    for attempt in range(max_retries):
        try:
            async with engine.begin() as conn:
                result = await conn.execute(text("SELECT 1"))
                logger.info(f"Connection test successful on attempt {attempt + 1}")
                return result.scalar()
        except Exception as e:
            logger.warning(f"Connection test attempt {attempt + 1} failed: {e}")

            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delays[attempt])
            else:
                logger.error("All connection test attempts failed")
                raise ConnectionError(f"Connection test failed after {max_retries} attempts: {e}") from e


# Database instances
async_engine = None
SessionLocal = None


def _engine_options(url: str) -> dict:
    if url.startswith("postgresql+asyncpg://"):
        return {
            "pool_pre_ping": True,
            "pool_recycle": 1800,       # 30 minutes recycle time
            "pool_size": 5,
            "max_overflow": 3,
            "pool_timeout": 30,
            "connect_args": {
                "command_timeout": 60,
                "server_settings": {
                    "application_name": "social_tracker",
                    "statement_timeout": "60s"
                }
            }
        }
    return {}


async def init_database(database_url: str = None):
    """Initialize the async engine and session factory"""
    global async_engine, SessionLocal

    # Single connection pool per process
    if async_engine is not None and SessionLocal is not None:
        logger.info("Database already initialized - reusing existing connection pool")
        return

    url = database_url or settings.async_database_url
    if not url:
        logger.warning("WARNING: Database URL not configured. Skipping database initialization.")
        return

    logger.info("Initializing database connections...")
    async_engine = create_async_engine(url, echo=settings.DATABASE_ECHO, **_engine_options(url))
    SessionLocal = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    try:
        await asyncio.wait_for(_test_connection(async_engine), timeout=30.0)
        logger.info("SUCCESS: Database connection test passed")
    except asyncio.TimeoutError:
        logger.warning("WARNING: Connection test timed out after 30s - continuing with pool")


async def close_database():
    """Close database connections and reset global state"""
    global async_engine, SessionLocal

    if async_engine:
        await async_engine.dispose()
        logger.info("Database connection pool closed")

    async_engine = None
    SessionLocal = None


async def create_tables():
    """Create all tracker tables"""
    if not async_engine:
        logger.warning("WARNING: Database not initialized. Skipping table creation.")
        return

    try:
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SUCCESS: Database tables created successfully")
    except Exception as e:
        logger.error(f"ERROR: Failed to create tables: {str(e)}")
        raise


def get_session() -> AsyncSession:
    """Get a new database session (use as async context manager)"""
    if not SessionLocal:
        raise RuntimeError("Database not initialized")
    return SessionLocal()


def is_initialized() -> bool:
    return SessionLocal is not None

