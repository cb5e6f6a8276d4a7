"""
Database Connection Management

SQLAlchemy engine and session helpers. Nothing here is global: the engine
and session factory live on the AppContext (see context.py) and request
handlers reach them through the get_db dependency.
"""

import logging
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wildlife_tracker.config import mask_database_url
from wildlife_tracker.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine.

    PostgreSQL gets a small connection pool with pre-ping so dropped
    connections are replaced transparently. SQLite (local runs, tests) is
    shared across threads.

    Args:
        database_url: SQLAlchemy URL

    Returns:
        SQLAlchemy engine instance
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)
    else:
        engine = create_engine(
            database_url,
            pool_pre_ping=True,  # Verify connections before using
            pool_size=5,
            max_overflow=10,
            pool_timeout=5,
            connect_args={"connect_timeout": 5},
            echo=False  # Set to True for SQL query logging
        )
    logger.info(f"SQLAlchemy engine created: {mask_database_url(database_url)}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory bound to an engine."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def check_connection(engine: Engine) -> None:
    """
    Run a trivial query to prove the database is reachable.

    Raises:
        StoreUnavailable: If the database cannot be reached
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except (OperationalError, InterfaceError) as e:
        raise StoreUnavailable(f"Database connection failed: {e}") from e


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a database session.

    Usage:
        @router.get("/items")
        async def get_items(db: Session = Depends(get_db)):
            ...

    Yields:
        SQLAlchemy Session instance

    The session is automatically closed after the request completes.
    """
    SessionLocal = request.app.state.context.session_factory
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
