"""
Operation-scoped database sessions.

Sessions are acquired lazily and released right after each operation, so no
connection is held while the renewal engine waits on the payment gateway.

Usage:
    # Single operation - acquires, commits and releases immediately
    async with get_session() as session:
        result = await session.get(Model, id)

    # Multiple operations in one transaction - share one session
    async with transaction():
        await transaction_repo.update(txn_id, completed)
        await subscription_repo.update(sub_id, extended_period)
    # Commits together, or rolls back together
"""

import time
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import get_logger
from common.db.session import AsyncSessionLocal

logger = get_logger(__name__)

# Holds the current session while inside a transaction() block
_current_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "db_current_session", default=None
)


def in_transaction() -> bool:
    """Check if we're currently inside a transaction() block."""
    return _current_session.get() is not None


@asynccontextmanager
async def transaction() -> AsyncGenerator[AsyncSession, None]:
    """
    Explicit transaction boundary.

    All repository calls inside share one session. Commits on success, rolls
    back on exception. Nested transaction() blocks reuse the outer session and
    leave commit/rollback to the outermost block.
    """
    existing = _current_session.get()
    if existing is not None:
        yield existing
        return

    start = time.perf_counter()
    async with AsyncSessionLocal() as session:
        logger.debug(
            f"Transaction session acquire: {(time.perf_counter() - start) * 1000:.2f}ms"
        )

        token = _current_session.set(session)
        try:
            yield session
            commit_start = time.perf_counter()
            await session.commit()
            logger.debug(
                f"Transaction commit: {(time.perf_counter() - commit_start) * 1000:.2f}ms"
            )
        except Exception as e:
            logger.error(f"Transaction rollback due to: {e}")
            await session.rollback()
            raise
        finally:
            _current_session.reset(token)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a session for a single DB operation.

    Reuses the session of an enclosing transaction() block (without
    committing). Otherwise acquires a new session, commits and releases it.
    """
    existing = _current_session.get()

    if existing is not None:
        logger.debug("Reusing existing transaction session")
        yield existing
        return

    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Operation rollback due to: {e}")
            await session.rollback()
            raise
