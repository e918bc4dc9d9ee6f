from typing import Generator
from sqlalchemy.orm import Session
from core.db.session import SessionLocal

def get_db() -> Generator[Session, None, None]:
    """One session per request, released on every exit path."""
    db: Session = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
