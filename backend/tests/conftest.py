"""
pytest shared fixtures

Every test gets its own in-memory SQLite database; the application
module-level engine is pointed at an in-memory URL as well so importing
app.main never touches a file on disk.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

from app.database import Base, make_engine, make_session_factory
from app.models import Student, HistoryEntry, MeasurementEntry, Trainer  # noqa: F401
from app.schemas import StudentRecord
from app.services.document_store import SqlAlchemyDocumentStore
from app.services.ledger import LedgerEngine


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory database"""
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory) -> SqlAlchemyDocumentStore:
    return SqlAlchemyDocumentStore(session_factory)


@pytest.fixture
def ledger(store) -> LedgerEngine:
    return LedgerEngine(store)


@pytest.fixture
def make_student():
    """Build an in-memory StudentRecord for pure rule tests"""
    counter = {"n": 0}

    def _make(name="Ayşe", remaining_lessons=10, total_fee=None, balance=0.0, **kwargs):
        counter["n"] += 1
        return StudentRecord(
            id=kwargs.pop("id", "student-{}".format(counter["n"])),
            name=name,
            total_lessons=kwargs.pop("total_lessons", max(remaining_lessons, 0)),
            remaining_lessons=remaining_lessons,
            total_fee=total_fee,
            balance=balance,
            **kwargs,
        )

    return _make
