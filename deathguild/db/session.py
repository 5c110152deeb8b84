"""
Engine and session construction plus the transaction boundary used by jobs.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from deathguild.core.errors import PersistenceError

logger = logging.getLogger(__name__)


def create_session_factory(database_url: str, **engine_kwargs) -> sessionmaker:
    """Create a session factory bound to a new engine for the given URL."""
    engine = create_engine(database_url, **engine_kwargs)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Provide a transactional scope around a series of operations.

    Commits when the block exits cleanly and rolls back on any exception.
    Database errors are re-raised as PersistenceError.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Rolled back transaction after database error: {e}")
        raise PersistenceError(str(e)) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
