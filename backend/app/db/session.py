# backend/app/db/session.py
import logging
import time
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.core.request_context import get_request_id, record_db_query

logger = logging.getLogger("codingchallenge")

DATABASE_URL = settings.database_url or "sqlite:///./dev.db"

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
    future=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)

# ---- DB observability (SQLAlchemy event hooks) ----

SLOW_QUERY_MS = float(settings.slow_db_query_ms)
LOG_DB_SQL = bool(settings.log_db_sql)


def _sql_head(statement: str) -> str:
    if not statement:
        return ""
    # Collapse whitespace + trim. No params logged.
    return " ".join(statement.split())[:240]


@event.listens_for(engine, "before_cursor_execute")
def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    context._cc_query_start = time.perf_counter()


@event.listens_for(engine, "after_cursor_execute")
def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    start = getattr(context, "_cc_query_start", None)
    if start is None:
        return

    duration_ms = (time.perf_counter() - start) * 1000.0
    record_db_query(duration_ms)

    if duration_ms >= SLOW_QUERY_MS:
        if LOG_DB_SQL:
            logger.warning(
                "slow_db_query request_id=%s duration_ms=%.2f sql=%s",
                get_request_id(),
                duration_ms,
                _sql_head(statement),
            )
        else:
            logger.warning(
                "slow_db_query request_id=%s duration_ms=%.2f",
                get_request_id(),
                duration_ms,
            )


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work around a multi-row write sequence.

    Commits when the block finishes, rolls back and re-raises on any error so
    callers never observe a partially applied change.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
