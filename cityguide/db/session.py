from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from cityguide.core.config import settings


def make_engine(url: str | None = None) -> Engine:
    url = url or settings.database_url
    connect_args = {}
    if url.startswith("sqlite"):
        # Request threads share the pool; 15s busy timeout for concurrent writers.
        connect_args = {"check_same_thread": False, "timeout": 15}
    return create_engine(url, echo=False, future=True, connect_args=connect_args)


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for batch scripts; services commit their own units of work."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
