"""Database session management with the context manager pattern.

Usage:
    from travelledger.storage.session import db_session

    with db_session() as db:
        repository = SqlAlchemyMatchRepository(db)
        lifecycle = MatchLifecycleManager(repository)
        lifecycle.approve("txn-1", "inv-7")
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from travelledger.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions with automatic cleanup.

    Yields:
        Session: SQLAlchemy session

    Raises:
        RuntimeError: If database not initialized
        Exception: Any exception from within the context (after rollback)

    Note:
        - Session is rolled back on exception
        - Session is closed on exit
        - Repositories commit their own writes
    """
    from travelledger.storage.database import base

    if base.SessionLocal is None:
        raise RuntimeError(
            "Database not initialized. Call init_db() first or configure DATABASE_URL."
        )

    db = base.get_session()
    try:
        logger.debug("db_session_created", session_id=id(db))
        yield db
    except Exception as e:
        logger.error(
            "db_session_error_rollback",
            error=str(e),
            error_type=type(e).__name__,
            session_id=id(db),
        )
        db.rollback()
        raise
    finally:
        logger.debug("db_session_closed", session_id=id(db))
        db.close()
