# jigz/db/session.py
"""
SQLAlchemy engine and session factory.

Every request gets its own Session through the `get_db` dependency. Coin
debits and the entity mutation they pay for share that session's
transaction, so commit/rollback is owned by the service layer, never by
the dependency itself.
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from jigz.core.config import settings
from jigz.db.base import Base


def make_engine(url: str, echo: bool = False):
    """Build an engine for `url`; in-memory SQLite shares one connection."""
    kwargs = {"future": True, "echo": echo}
    lower = url.lower()
    if lower.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in lower or lower in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(url, **kwargs)


engine = make_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


def init_db(bind=None) -> None:
    """Create tables that do not exist yet."""
    from jigz.db import models  # noqa: F401  (registers mappers)

    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Generator[Session, None, None]:
    """
    Yields a SQLAlchemy session. Use as dependency:
        db = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
