"""
tests/conftest.py

Shared fixtures for the report pipeline tests.

Database-backed tests run against SQLite in memory; the models use
dialect-neutral column types so ``Base.metadata.create_all`` builds the
same tables the migrations create on PostgreSQL.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  (registers every table on Base.metadata)
from app.domain.records import StatusChangeRecord
from db.base import Base
from tests.factories import status_change


@pytest.fixture()
def acme_beta_records() -> list[StatusChangeRecord]:
    """Two Acme candidates (Processed, Interview) and one Beta candidate (Joined)."""
    return [
        status_change("c1", client="Acme", main="Processed", sub="Processed (Client)"),
        status_change("c2", client="Acme", main="Interview", sub="L1", job_id="job-2"),
        status_change("c3", client="Beta", main="Joined", sub="Joined", job_id="job-3"),
    ]


@pytest.fixture()
def db_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db_session(db_engine: Engine) -> Iterator[Session]:
    factory = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()
