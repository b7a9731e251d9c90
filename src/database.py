"""
Database configuration and session management.

Provides:
- Engine creation per database type (create_app_engine)
- SessionLocal factory for creating database sessions
- get_db() dependency for FastAPI request-scoped sessions
- Database initialization utilities
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event, make_url, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.config import get_settings

logger = logging.getLogger(__name__)

# Get settings
settings = get_settings()

# Validate production configuration
if settings.is_production:
    settings.validate_production_config()


def configure_sqlite_engine(sqlite_engine: Engine) -> Engine:
    """
    Prepare a SQLite engine for the transaction patterns the services use.

    - Enforces foreign keys (ON DELETE CASCADE for participants and votes)
    - Lets SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly;
      pysqlite's own transaction handling releases the outer transaction
      when the first savepoint is released.
    """

    @event.listens_for(sqlite_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign key constraints and driver-level autocommit."""
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sqlite_engine, "begin")
    def do_begin(conn):
        """Start the transaction explicitly."""
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


def create_app_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine for a database URL.

    SQLite files get a regular pool, so each threadpool worker holds its own
    connection and transaction. Only in-memory SQLite shares one connection
    (StaticPool), since every new connection would see an empty database.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        in_memory = not url.database or url.database == ":memory:" or url.query.get("mode") == "memory"
        if in_memory:
            return configure_sqlite_engine(
                create_engine(
                    database_url,
                    connect_args={"check_same_thread": False},  # FastAPI runs sync routes in a threadpool
                    poolclass=StaticPool,
                    echo=echo,
                )
            )

        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return configure_sqlite_engine(
            create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                echo=echo,
            )
        )

    # PostgreSQL-specific configuration
    return create_engine(
        database_url,
        pool_size=5,
        pool_recycle=3600,
        pool_pre_ping=True,
        echo=echo,
    )


engine = create_app_engine(settings.database_url, echo=settings.log_level == "DEBUG")


# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for request-scoped database sessions.

    Services flush their changes; this dependency owns the transaction.
    Commits when the request succeeds, rolls back on exception.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside FastAPI.

    Usage for scripts or background jobs:
        with get_db_context() as db:
            assign_lesson_plans(db, lesson_plans)
            # Automatic commit on context exit

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """
    Initialize database by creating all tables.

    Useful for development and testing. In production, use Alembic migrations.
    """
    from src.models.base import Base
    import src.models  # noqa: F401  (registers every table on Base.metadata)

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def check_connection() -> bool:
    """
    Test database connection.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        with get_db_context() as db:
            db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
