"""
Database connection and session management.

Only used when DATA_SOURCE is "database" and by scripts/init_database.py.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from enrolment_pulse.config import settings
from typing import Generator, Optional


def create_db_engine(url: str, is_postgres: bool = False) -> Engine:
    """Engine with the pool/pragma settings for the given backend."""
    if is_postgres:
        # PostgreSQL settings
        return create_engine(
            url,
            echo=False,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )

    # SQLite settings
    sqlite_engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        echo=False,
        pool_pre_ping=True,
    )

    @event.listens_for(sqlite_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return sqlite_engine


# Database URL (PostgreSQL or SQLite)
SQLALCHEMY_DATABASE_URL = settings.database_url

engine = create_db_engine(SQLALCHEMY_DATABASE_URL, settings.is_postgres)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.
    Use with FastAPI's Depends().
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None):
    """Initialize database by creating all tables."""
    from enrolment_pulse.models import enrollment  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
