from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from erp_portal.config import settings
from erp_portal.exceptions import TransactionAbortedError
import logging

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

# Environment-based configurations
if DATABASE_URL.startswith("sqlite"):
    engine = create_async_engine(DATABASE_URL, echo=settings.debug)
elif settings.environment == "production":
    engine = create_async_engine(
        DATABASE_URL,
        pool_size=20,
        max_overflow=50,
        pool_timeout=60,
        pool_recycle=1800,
    )
else:
    engine = create_async_engine(
        DATABASE_URL,
        echo=settings.debug,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
    )

AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db():
    logger.debug("Opening database session...")
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except Exception as e:
            logger.error(f"Database session error: {type(e).__name__}")
            raise
        finally:
            try:
                await db.close()
                logger.debug("Database session closed.")
            except Exception as close_error:
                logger.warning(f"Error closing database session: {close_error}")


@asynccontextmanager
async def unit_of_work(db: AsyncSession, operation: str):
    """
    Run a group of writes as one transaction on ``db``.

    Commits when the block exits normally and rolls back on any exception,
    so a failed unit never leaves part of its writes behind. Store-level
    failures are re-raised as TransactionAbortedError; domain errors raised
    inside the block propagate unchanged after the rollback.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Unit of work '{operation}' aborted: {type(e).__name__}")
        raise TransactionAbortedError(operation=operation) from e
    except BaseException:
        await db.rollback()
        logger.info(f"Unit of work '{operation}' rolled back")
        raise
