# policy_approval/db/engine.py
"""
Database engine and session management.

Connects to PostgreSQL in production. Row-level security policies in the
PostgreSQL schema read the acting user from the transaction setting
``app.user_id``; see bind_actor().
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import DataError, IntegrityError, ProgrammingError
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from ..errors import ConflictError, PermissionDeniedError, ValidationError
from ..settings import settings

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# SQLSTATE raised when a row-level security policy refuses a write
INSUFFICIENT_PRIVILEGE = "42501"


def _engine_kwargs(url: str) -> Dict[str, Any]:
    """Connection pool settings; SQLite gets none."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Check connection health
        "pool_size": 10,
        "max_overflow": 20,
    }


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

# Base class for ORM models
Base = declarative_base()


def get_engine() -> Engine:
    """Get SQLAlchemy engine."""
    return engine


def get_session() -> Generator[Session, None, None]:
    """
    Get database session.

    Yields a session that auto-closes on context exit.
    For use with FastAPI Depends.
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with session_scope() as session:
            session.execute(...)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def is_postgres(session_or_engine) -> bool:
    """True when the bound dialect is PostgreSQL."""
    bind = session_or_engine.get_bind() if isinstance(session_or_engine, Session) else session_or_engine
    return bind.dialect.name == "postgresql"


def bind_actor(session: Session, user_id: Optional[str]) -> None:
    """
    Expose the acting user to row-level security for the current transaction.

    The setting is transaction-local, so it must be bound again after each
    commit. No-op on databases without RLS.
    """
    if user_id is None or not is_postgres(session):
        return
    session.execute(
        text("SELECT set_config('app.user_id', :user_id, true)"),
        {"user_id": str(user_id)},
    )


def apply_migrations(target: Optional[Engine] = None) -> list:
    """
    Run the SQL migration files in name order.

    Every migration is idempotent, so re-running is safe.

    Returns:
        Names of the files applied
    """
    target = target or engine
    applied = []
    for path in sorted(MIGRATIONS_DIR.glob("*.sql")):
        with target.begin() as conn:
            conn.exec_driver_sql(path.read_text())
        applied.append(path.name)
    return applied


def init_db(target: Optional[Engine] = None) -> None:
    """
    Create the schema.

    PostgreSQL gets the full migration (constraints, triggers, RLS);
    other dialects get the ORM table definitions only.
    """
    from . import models  # noqa: F401  registers tables on Base.metadata

    target = target or engine
    if is_postgres(target):
        apply_migrations(target)
    else:
        Base.metadata.create_all(bind=target)


def check_connection() -> bool:
    """
    Check database connection.

    Returns:
        True if connection successful
    """
    try:
        with session_scope() as session:
            session.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def commit_or_raise(session: Session) -> None:
    """
    Commit the session, translating constraint violations.

    The database message is passed through unmodified. Unique violations
    become ConflictError, every other integrity error ValidationError.
    Malformed values (DataError, e.g. a non-UUID id) become ValidationError.
    Row-level security refusals (SQLSTATE 42501) become PermissionDeniedError.
    """
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        message = str(e.orig)
        if "unique" in message.lower() or "duplicate" in message.lower():
            raise ConflictError(message) from e
        raise ValidationError(message) from e
    except DataError as e:
        session.rollback()
        raise ValidationError(str(e.orig)) from e
    except ProgrammingError as e:
        session.rollback()
        if getattr(e.orig, "pgcode", None) == INSUFFICIENT_PRIVILEGE:
            raise PermissionDeniedError(str(e.orig)) from e
        raise
