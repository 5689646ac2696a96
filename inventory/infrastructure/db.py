from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from inventory.core.logging_config import get_logger
from inventory.domain.errors import DeadlineExceededError, InternalError, InventoryError
from inventory.domain.models import Base

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

# Seconds a SQLite writer waits for the database lock before failing
SQLITE_BUSY_TIMEOUT = 30

# SQLSTATE for query_canceled, raised when statement_timeout fires
PG_QUERY_CANCELED = "57014"

def create_db_engine(database_url: str, echo: bool = False, pool_size: int = 5) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, future=True, **kwargs)
        _enable_sqlite_foreign_keys_and_savepoints(engine)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        future=True,
        pool_size=pool_size,
        pool_pre_ping=True,
    )

def _enable_sqlite_foreign_keys_and_savepoints(engine: Engine) -> None:
    # pysqlite manages BEGIN itself and breaks SAVEPOINT; take over transaction start
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # IMMEDIATE takes the write lock up front: ledger calls read before they
    # write, and a deferred lock upgrade fails instead of waiting
    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

def init_models(engine: Engine) -> None:
    Base.metadata.create_all(engine)

def run_migrations(engine: Engine, revision: str = "head") -> None:
    """Upgrade the schema with alembic over a connection from ``engine``."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    with engine.begin() as connection:
        cfg.attributes["connection"] = connection
        command.upgrade(cfg, revision)

def _apply_statement_timeout(session: Session, timeout: Optional[float]) -> None:
    if timeout is None:
        return
    if session.get_bind().dialect.name == "postgresql":
        # SET does not take bind parameters; the value is a validated int
        session.execute(text(f"SET LOCAL statement_timeout = {max(1, int(timeout * 1000))}"))

def _is_query_canceled(exc: OperationalError) -> bool:
    return getattr(exc.orig, "pgcode", None) == PG_QUERY_CANCELED

@contextmanager
def session_scope(
    session_factory: sessionmaker,
    operation: str,
    timeout: Optional[float] = None,
    **context: Any,
) -> Iterator[Session]:
    """
    One session, one transaction, for one service call.

    Commits when the block exits normally; on any error the transaction is
    rolled back and the session closed. Store failures are re-raised as
    ``InternalError`` (or ``DeadlineExceededError`` for a cancelled
    statement) carrying ``operation`` and the entity keys in ``context``;
    the driver error is chained, not exposed in the message.
    """
    if timeout is not None and timeout <= 0:
        raise DeadlineExceededError(
            f"{operation}: deadline exceeded before the call started",
            operation=operation,
            **context,
        )

    session = session_factory()
    try:
        _apply_statement_timeout(session, timeout)
        yield session
        session.commit()
    except InventoryError:
        session.rollback()
        raise
    except OperationalError as exc:
        session.rollback()
        if _is_query_canceled(exc):
            logger.warning(
                f"{operation} cancelled by statement timeout",
                extra={'extra_fields': {'operation': operation, 'timeout': timeout, **context}},
            )
            raise DeadlineExceededError(
                f"{operation}: deadline exceeded", operation=operation, **context
            ) from exc
        logger.error(
            f"{operation} failed",
            exc_info=True,
            extra={'extra_fields': {'operation': operation, **context}},
        )
        raise InternalError(f"{operation} failed", operation=operation, **context) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(
            f"{operation} failed",
            exc_info=True,
            extra={'extra_fields': {'operation': operation, **context}},
        )
        raise InternalError(f"{operation} failed", operation=operation, **context) from exc
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()
