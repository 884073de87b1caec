from collections.abc import Generator

from sqlalchemy.orm import Session

from lessonforge.core.config import Settings, get_settings
from lessonforge.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_app_settings() -> Settings:
    return get_settings()
