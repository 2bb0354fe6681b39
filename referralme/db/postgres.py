from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from contextlib import contextmanager
import logging

from referralme.core.config import get_settings
from referralme.db.schema import metadata

settings = get_settings()
logger = logging.getLogger(__name__)


def _build_engine():
    url = settings.sqlalchemy_url
    if url.startswith("sqlite"):
        # Local runs and tests; the app serves requests from a thread pool
        sqlite_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.debug
        )

        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    # pool_size=5: maintain 5 connections ready
    # max_overflow=10: allow 10 extra connections under load
    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=settings.debug  # Log SQL queries in debug mode
    )


engine = _build_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(select(users))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_schema():
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)
    logger.info("Database schema ready (%d tables)", len(metadata.tables))


def check_database_connection() -> bool:
    """
    Test if the database is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    Used for the aggregate dashboard queries.
    """
    with get_db_session() as db:
        result = db.execute(text(sql), params or {})
        # Convert rows to dicts
        columns = result.keys()
        return [dict(zip(columns, row)) for row in result.fetchall()]


def fetch_one(db: Session, statement) -> dict:
    """Run a Core SELECT and return the first row as a dict (or None)."""
    row = db.execute(statement).mappings().first()
    return dict(row) if row else None


def fetch_all(db: Session, statement) -> list:
    """Run a Core SELECT and return all rows as dicts."""
    return [dict(row) for row in db.execute(statement).mappings().all()]
