"""Database session management with connection pooling"""

from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from logbook_ledger.config import settings


def build_engine(database_url: str) -> Engine:
    """Create an engine; pooling limits only apply to server databases"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


def build_session_factory(database_url: str) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=build_engine(database_url))


_session_factory: sessionmaker | None = None


def get_session_factory() -> sessionmaker:
    """Session factory for the configured database, built on first use"""
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(settings.database_url)
    return _session_factory


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
