from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from meditrack.core.config import get_settings

settings = get_settings()

connect_args = (
    {"check_same_thread": False}
    if settings.database_url.startswith("sqlite")
    else {}
)

engine = create_engine(
    str(settings.database_url),
    future=True,
    pool_pre_ping=True,
    connect_args=connect_args,
)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a DB session.

    One session per request; services own the transaction boundaries.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Generator[Session, None, None]:
    """
    Run a unit of work in the session's current transaction.

    Usage:
        with atomic(db):
            db.add(...)

    Commits when the block exits normally. Any exception (domain errors
    included) rolls back everything done inside the block, which also
    releases row locks taken with `with_for_update()`.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
