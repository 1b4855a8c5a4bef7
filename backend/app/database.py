"""
Database engine, session factory and ORM base.

PostgreSQL in Docker/production, SQLite for local development and tests.
make_engine() holds the per-backend settings so the application engine
and the in-memory test engines are configured the same way. Sessions are
never handed to routes: the document store takes SessionLocal (or a test
factory) and owns every session it opens.
"""

import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///./trainer_ledger.db"
)


def is_sqlite(url: str = DATABASE_URL) -> bool:
    return url.startswith("sqlite")


def _is_in_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def make_engine(url: str = DATABASE_URL):
    """
    Build an engine for url.

    - postgresql: small pool with pre-ping
    - sqlite file: WAL journal so snapshot reads don't block ledger writes
    - sqlite in-memory: one shared connection, otherwise every session
      would see its own empty database
    """
    engine_kwargs = {"echo": False}

    if url.startswith("postgresql"):
        engine_kwargs.update({
            "pool_size": 5,
            "max_overflow": 10,
            "pool_pre_ping": True,
        })
    elif is_sqlite(url):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if _is_in_memory(url):
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **engine_kwargs)

    if is_sqlite(url) and not _is_in_memory(url):
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


def make_session_factory(bind) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)


class Base(DeclarativeBase):
    """Base class for the ledger tables (students, history, measurements, trainers)."""
    pass


def create_tables(bind=None):
    """
    Create all tables directly. Used for SQLite and tests; PostgreSQL
    deployments run the Alembic migrations instead.
    """
    Base.metadata.create_all(bind=bind or engine)
