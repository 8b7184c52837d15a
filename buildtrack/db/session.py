"""SQLAlchemy engine, session factory and the unit-of-work helper."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..core.config import settings

# SQLite connections are shared by FastAPI worker threads.
CONNECT_ARGS = {"check_same_thread": False} if settings.is_sqlite else {}

engine = create_engine(settings.DB_URL, connect_args=CONNECT_ARGS, pool_pre_ping=not settings.is_sqlite)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session, *, commit: bool = True) -> Iterator[Session]:
    """Run a block as one all-or-nothing change set.

    With ``commit=False`` the caller owns the outer transaction: nothing is
    committed here, but a failure still rolls the session back before the
    exception propagates.
    """

    try:
        yield db
        if commit:
            db.commit()
        else:
            db.flush()
    except Exception:
        db.rollback()
        raise
