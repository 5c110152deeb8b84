"""
Test configuration and fixtures for pytest.
"""

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from deathguild.core.config import Settings
from deathguild.db.base import Base
import deathguild.db.models  # noqa: F401

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def test_engine():
    """Create an in-memory SQLite engine shared by every session in a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine, as handed to services."""
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db_session(session_factory):
    """Create a new database session for a test."""
    session = session_factory()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def settings():
    """Settings with small batches and no real pauses."""
    return Settings(
        database_url="sqlite://",
        concurrency=2,
        enrich_batch_size=2,
        spotify_client_id="test_client_id",
        spotify_client_secret="test_client_secret",
        spotify_refresh_token="test_refresh_token",
        rate_limit_min=0.0,
        rate_limit_max=0.0,
    )


@pytest.fixture
def read_fixture():
    """Read a sample document from tests/fixtures."""

    def read(name: str) -> str:
        return (FIXTURES_DIR / name).read_text(encoding="utf-8")

    return read
