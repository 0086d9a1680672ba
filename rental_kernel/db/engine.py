"""
Module: rental_kernel.db.engine
Responsibility: SQLAlchemy engine construction, transactional scope
    utilities, and schema creation.  This is the single point of database
    connection configuration for the kernel.
Architecture position: Kernel > DB.  May import from db/base.py and
    exceptions.py.  MUST NOT import from services/, selectors/, domain/, or
    outer layers (except create_tables, which imports models so that
    Base.metadata discovers every table).

Invariants enforced:
    - No module-level engine.  Callers build an engine, wrap it in a session
      factory, and hand that factory to the components that need it.
    - PostgreSQL is the production backend: READ COMMITTED isolation with
      explicit row-level locking (FOR UPDATE) where stronger isolation is
      needed.  SQLite is accepted for tests; FOR UPDATE is a no-op there and
      foreign keys are switched on per connection.
    - transaction_scope() commits on normal exit and rolls back on ANY
      exception, always closing the session.  Every multi-statement write in
      the kernel runs inside exactly one scope.
    - A caller-supplied timeout bounds every statement in the scope
      (PostgreSQL ``SET LOCAL statement_timeout``); a cancelled statement is
      surfaced as StoreTimeoutError after full rollback.

Failure modes:
    - StoreTimeoutError when a statement exceeds the scope timeout.
    - Connection pool exhaustion if pool_size + max_overflow is exceeded.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from rental_kernel.exceptions import StoreTimeoutError
from rental_kernel.logging_config import get_logger

logger = get_logger("db.engine")

# PostgreSQL SQLSTATE for "canceling statement due to statement timeout"
_PG_QUERY_CANCELED = "57014"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create an engine for ``database_url`` without touching module state.

    PostgreSQL URLs get a QueuePool at READ COMMITTED.  SQLite URLs get a
    StaticPool for in-memory databases (one shared connection, so every
    session sees the same data) and foreign key enforcement.
    """
    backend = make_url(database_url).get_backend_name()

    if backend == "sqlite":
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
    )


def _apply_statement_timeout(session: Session, timeout_ms: int) -> None:
    bind = session.get_bind()
    if bind.dialect.name != "postgresql":
        return
    # SET LOCAL does not accept bind parameters
    session.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))


def _is_statement_timeout(exc: OperationalError) -> bool:
    return getattr(exc.orig, "pgcode", None) == _PG_QUERY_CANCELED


@contextmanager
def transaction_scope(
    session_factory: sessionmaker[Session],
    timeout_ms: int | None = None,
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed.  The exception
        is re-raised to the caller, except that a statement timeout is
        re-raised as StoreTimeoutError.

    Args:
        session_factory: Factory producing sessions bound to the store.
        timeout_ms: Upper bound for every statement in the scope, or None.

    Usage:
        with transaction_scope(factory, timeout_ms=2000) as session:
            RentalService(session, clock).create_rental(...)
    """
    session = session_factory()
    logger.debug("transaction_started", extra={"timeout_ms": timeout_ms})
    try:
        if timeout_ms is not None:
            _apply_statement_timeout(session, timeout_ms)
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except OperationalError as exc:
        session.rollback()
        if _is_statement_timeout(exc):
            logger.warning(
                "transaction_timed_out",
                extra={"timeout_ms": timeout_ms},
            )
            raise StoreTimeoutError(timeout_ms) from exc
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine) -> None:
    """Create all tables defined in the models."""
    from rental_kernel.db.base import Base
    import rental_kernel.models  # noqa: F401

    Base.metadata.create_all(engine)


def drop_tables(engine: Engine) -> None:
    """
    Drop all tables. Use with caution - primarily for testing.
    """
    from rental_kernel.db.base import Base
    import rental_kernel.models  # noqa: F401

    Base.metadata.drop_all(engine)
