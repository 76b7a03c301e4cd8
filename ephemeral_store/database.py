"""
Database Configuration and Session Management
"""

from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from ephemeral_store.config import settings
import logging

logger = logging.getLogger(__name__)

# Create SQLAlchemy engine
engine: Optional[Engine] = None
SessionLocal: Optional[sessionmaker] = None

# Base class for all models
Base = declarative_base()


def _enable_sqlite_wal(dbapi_connection, connection_record):
    """Single writer, many readers; writers wait at most busy_timeout."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={int(settings.database_timeout_seconds * 1000)}")
    cursor.close()


def normalize_database_url(database_url: str) -> str:
    """Plain postgresql:// URLs go through the psycopg 3 driver"""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return database_url


def create_db_engine(database_url: str) -> Engine:
    """
    Build an engine for the given URL.

    SQLite databases get their parent directory created, a bounded lock
    timeout and WAL journaling. Other backends use a pre-pinged pool.
    """
    url = make_url(normalize_database_url(database_url))

    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        db_engine = create_engine(
            url,
            connect_args={
                "timeout": settings.database_timeout_seconds,
                "check_same_thread": False,
            },
        )
        event.listen(db_engine, "connect", _enable_sqlite_wal)
        return db_engine

    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using them
        pool_size=5,
        max_overflow=10,
        pool_timeout=settings.database_timeout_seconds,
    )


def init_db(database_url: Optional[str] = None) -> sessionmaker:
    """Initialize database connection and create the schema if missing"""
    global engine, SessionLocal

    # Import models so they register with Base.metadata
    from ephemeral_store import models  # noqa: F401

    logger.info("Connecting to database...")
    engine = create_db_engine(database_url or settings.database_url)
    Base.metadata.create_all(bind=engine)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    logger.info("Database connection established")
    return SessionLocal


def dispose_db():
    """Release pooled connections on shutdown"""
    global engine, SessionLocal

    if engine is not None:
        engine.dispose()
    engine = None
    SessionLocal = None


def database_file_path() -> Optional[Path]:
    """Path of the SQLite database file, None for other backends"""
    url = engine.url if engine is not None else make_url(settings.database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return None
    return Path(url.database)
