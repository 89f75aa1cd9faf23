from typing import Generator

from sqlalchemy.orm import Session

from .session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Provide a database session that is closed afterwards.

    Usage:
        gen = get_db()
        db = next(gen)
        try:
            create_transaction(db, conjunto_id, data)
        finally:
            gen.close()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
