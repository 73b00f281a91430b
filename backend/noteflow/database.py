"""
NoteFlow Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Transaction Model:
    One session (and one transaction) per request. Every write a handler
    performs is committed together when the handler returns, and discarded
    together when anything raises. A purchase that fails half-way therefore
    leaves no payment row behind.

Conditional Writes:
    Uniqueness races (double purchase, double like, double bookmark) are
    resolved by the database, not by check-then-insert. `insert_ignoring_conflicts`
    builds an `INSERT ... ON CONFLICT DO NOTHING` statement for the dialect
    the session is bound to; an empty RETURNING means "row already existed".
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from noteflow.config import settings


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """SQLite ignores ON DELETE rules unless each connection opts in."""

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool options only apply to server databases; SQLite uses its own pool."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))
if engine.dialect.name == "sqlite":
    enable_sqlite_foreign_keys(engine)

# expire_on_commit=False: attributes stay readable after the request commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model registers with `Base.metadata`, which Alembic reads for
    autogenerate and the test suite uses to create the schema.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handlers
        5. Always: closes the session (returns connection to pool)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Dialect Helpers ───────────────────────────────────────────────────────
def insert_ignoring_conflicts(session: AsyncSession, model, **values):
    """
    Build `INSERT ... ON CONFLICT DO NOTHING` for the session's dialect.

    Callers add `.returning(...)` when they need to know whether the row
    was actually written.
    """
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        stmt = postgresql.insert(model)
    elif dialect_name == "sqlite":
        stmt = sqlite.insert(model)
    else:
        raise NotImplementedError(f"Conditional insert is not supported on '{dialect_name}'")
    return stmt.values(**values).on_conflict_do_nothing()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Closes all pooled connections; called from the app lifespan on shutdown."""
    await engine.dispose()
