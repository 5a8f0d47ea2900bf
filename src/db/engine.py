"""LC Credit Ledger - Async database engine."""

import functools
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from src.core.config import get_settings
from src.core.exceptions import DependencyFailureError

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict[str, Any]:
    """Pool options; SQLite (tests/local) does not take a sized pool."""
    if url.startswith("sqlite"):
        return {}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


# MySQL (aiomysql) in production, SQLite (aiosqlite) in tests
engine = create_async_engine(
    get_settings().database_url,
    echo=get_settings().debug,
    **_engine_kwargs(get_settings().database_url),
)

# Sessions keep loaded attributes after commit so results can be serialized
async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db() -> None:
    """Create any missing tables (local and test databases; production uses Alembic)."""
    import src.models  # noqa: F401  register tables on metadata

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()


async def _session_scope() -> AsyncGenerator[AsyncSession, None]:
    # Work a service already committed is untouched; anything left open is
    # committed on success and discarded on error.
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Session for Celery tasks and scripts: `async with get_session() as db: ...`
get_session = asynccontextmanager(_session_scope)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session dependency."""
    async with get_session() as session:
        yield session


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Run a block as a single transaction on ``session``.

    Commits when the block completes; rolls back on any error so that no
    partial ledger state is ever committed. Datastore failures are reported
    as DependencyFailureError.

    Usage:
        async with atomic(db):
            account = await service.lock_account(user_id)
            ...
    """
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Transaction rolled back after datastore error: {e}")
        raise DependencyFailureError("Credit ledger write failed") from e
    except Exception:
        await session.rollback()
        raise


# MySQL deadlock and lock wait timeout
LOCK_CONFLICT_ERROR_CODES = frozenset({1213, 1205})
CONFLICT_ATTEMPTS = 2


def is_lock_conflict(error: BaseException) -> bool:
    """Whether a rolled-back transaction lost a race and is safe to rerun.

    Covers InnoDB deadlocks between first-time inserts of account/limit rows
    and the duplicate-key failure of the slower of two such inserts.
    """
    cause = error.__cause__ if isinstance(error, DependencyFailureError) else error
    if isinstance(cause, IntegrityError):
        return True
    if isinstance(cause, OperationalError):
        args = getattr(cause.orig, "args", ())
        return bool(args) and args[0] in LOCK_CONFLICT_ERROR_CODES
    return False


def retry_on_conflict(fn: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
    """Rerun an ``atomic`` use case once when its transaction lost a lock race.

    The wrapped coroutine must redo all of its reads. Any other failure, or a
    second conflict, is raised unchanged.
    """

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        for attempt in range(1, CONFLICT_ATTEMPTS):
            try:
                return await fn(*args, **kwargs)
            except DependencyFailureError as e:
                if not is_lock_conflict(e):
                    raise
                logger.warning(f"{fn.__qualname__} lost a lock race (attempt {attempt}), retrying")
        return await fn(*args, **kwargs)

    return wrapper
