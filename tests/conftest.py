from __future__ import annotations

import os

# Settings read APP_ENVIRONMENT; testing keeps logging off disk
os.environ.setdefault("APP_ENVIRONMENT", "testing")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from leadership360.domain.catalog import get_catalog
from leadership360.domain.models import ScoreEntry
from leadership360.infrastructure.config import reset_settings
from leadership360.infrastructure.logging import clear_context
from leadership360.infrastructure.models import Base, UserORM


@pytest.fixture(autouse=True)
def fresh_settings():
    reset_settings()
    yield
    reset_settings()
    clear_context()


@pytest.fixture
def catalog():
    return get_catalog("v2")


@pytest.fixture
def engine():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def SessionLocal(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def db_session(SessionLocal):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def leader(db_session):
    user = UserORM(email="leader@example.com", name="Lee Leader", role="leader", project="Atlas")
    db_session.add(user)
    db_session.flush()
    return user


@pytest.fixture
def manager(db_session):
    user = UserORM(email="manager@example.com", name="Max Manager", role="manager")
    db_session.add(user)
    db_session.flush()
    return user


@pytest.fixture
def make_entries():
    """Build ScoreEntry records from (question_id, leader, manager) tuples."""

    def _make(*triples):
        return [
            ScoreEntry(question_id=q, leader_score=lead, manager_score=mgr)
            for q, lead, mgr in triples
        ]

    return _make
