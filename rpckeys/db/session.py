import logging
import time
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import sessionmaker, Session

from rpckeys.core.config import settings
from rpckeys.core.errors import InternalError, StoreUnavailable

logger = logging.getLogger(__name__)


def _engine_options(url: str, statement_timeout: float) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False, "timeout": settings.DB_CONNECT_TIMEOUT_SECONDS}}
    connect_args = {"connect_timeout": settings.DB_CONNECT_TIMEOUT_SECONDS}
    if statement_timeout > 0:
        if url.startswith("postgresql"):
            connect_args["options"] = f"-c statement_timeout={int(statement_timeout * 1000)}"
        elif url.startswith("mysql"):
            connect_args["read_timeout"] = int(statement_timeout)
            connect_args["write_timeout"] = int(statement_timeout)
    return {"connect_args": connect_args, "pool_timeout": settings.DB_POOL_TIMEOUT_SECONDS}


def _limit_sqlite_statements(engine: Engine, statement_timeout: float) -> None:
    """Interrupt SQLite statements that run longer than ``statement_timeout`` seconds."""

    @event.listens_for(engine, "connect")
    def _install_progress_handler(dbapi_connection, connection_record):
        info = connection_record.info

        def _over_deadline() -> int:
            started = info.get("statement_started")
            return int(started is not None and time.monotonic() - started > statement_timeout)

        # a non-zero return aborts the statement with OperationalError("interrupted")
        dbapi_connection.set_progress_handler(_over_deadline, 1000)

    @event.listens_for(engine, "before_cursor_execute")
    def _start_clock(conn, cursor, statement, parameters, context, executemany):
        conn.info["statement_started"] = time.monotonic()

    @event.listens_for(engine, "checkin")
    def _stop_clock(dbapi_connection, connection_record):
        connection_record.info.pop("statement_started", None)


def create_store_engine(url: str, statement_timeout: float = settings.DB_STATEMENT_TIMEOUT_SECONDS, **kwargs) -> Engine:
    options = _engine_options(url, statement_timeout)
    options.update(kwargs)
    engine = create_engine(url, **options)
    if url.startswith("sqlite") and statement_timeout > 0:
        _limit_sqlite_statements(engine, statement_timeout)
    return engine


# Create the SQLAlchemy engine
engine = create_store_engine(settings.DATABASE_URL,
                             pool_pre_ping=True,
                             pool_recycle=3600,
)

# Create a configured "Session" class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# do not change the order of the code below
# Dependency that can be used in routes to get the session
def get_db() -> Iterator[Session]:
    db = SessionLocal()  # generate a new SessionLocal
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_errors(db: Session, operation: str) -> Iterator[None]:
    """
    Translate backend failures raised inside the block into the service taxonomy.

    Connection problems, pool exhaustion and invalidated connections become
    StoreUnavailable (retryable by the client); any other SQLAlchemy error is an
    InternalError. The session is rolled back in both cases and the raw backend
    text is only logged.
    """
    try:
        yield
    except (OperationalError, PoolTimeoutError) as e:
        db.rollback()
        logger.warning("store unavailable during %s: %s", operation, e)
        raise StoreUnavailable(reason=f"{operation}: {e}") from e
    except DBAPIError as e:
        db.rollback()
        if e.connection_invalidated:
            logger.warning("store connection lost during %s: %s", operation, e)
            raise StoreUnavailable(reason=f"{operation}: {e}") from e
        logger.error("store error during %s: %s", operation, e)
        raise InternalError(reason=f"{operation}: {e}") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("store error during %s: %s", operation, e)
        raise InternalError(reason=f"{operation}: {e}") from e
