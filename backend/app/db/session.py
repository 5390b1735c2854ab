"""
SQLAlchemy engine + session factory.
Import *get_db* as a FastAPI dependency in route handlers.
"""
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
    echo=settings.DB_ECHO,
)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Avoid lazy-load errors after commit
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields one session per request.

    Services commit explicitly; anything left uncommitted when the request
    ends (e.g. after an exception) is rolled back on close.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
