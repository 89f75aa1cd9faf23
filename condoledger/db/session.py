from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from condoledger.core.config import get_settings

settings = get_settings()


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for the given URL.

    SQLite needs ``check_same_thread`` disabled so sessions can move between
    worker threads; other backends get a pre-ping pool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


engine = make_engine(settings.database_url, echo=settings.sql_echo)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine | None = None) -> None:
    """Create all tables. Intended for local development and tests; use alembic elsewhere."""
    from condoledger.models import Base

    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def atomic(db: Session) -> Generator[Session, None, None]:
    """
    Run a block as one database transaction.

    Commits when the block exits normally. On any exception the session is
    rolled back and the exception re-raised, so partial writes never persist.

    Usage:
        with atomic(db):
            ...
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
