"""
Database connection management for the agency backend.

Provides the engine, the session factory and the request-scoped session
dependency.
"""
from typing import Generator
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from ..config import get_settings
from .models import Base

settings = get_settings()
DATABASE_URL = settings.database_url
IS_SQLITE = DATABASE_URL.startswith("sqlite")

engine = create_engine(
    DATABASE_URL,
    echo=settings.sql_echo,
    poolclass=StaticPool if IS_SQLITE else None,
    connect_args={"check_same_thread": False} if IS_SQLITE else {}
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Enable foreign key constraints for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    if "sqlite" in str(dbapi_connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_tables():
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine)


# PUBLIC_INTERFACE
def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class DatabaseManager:
    """Database management utilities."""

    @staticmethod
    def init_db():
        """Initialize the database with tables."""
        create_tables()

    @staticmethod
    def reset_db():
        """Reset the database by dropping and recreating tables."""
        drop_tables()
        create_tables()

    @staticmethod
    def ping() -> bool:
        """Run a trivial query; False when the database is unreachable."""
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except Exception:
            return False
