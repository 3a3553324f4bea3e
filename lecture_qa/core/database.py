"""
Shared Database Engine - Singleton Pattern.

One SQLAlchemy engine for the whole process, used by the chat history
repository. SQLite is the default for development; production points
DATABASE_URL at Postgres and gets a bounded connection pool.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lecture_qa.core.config import settings

logger = logging.getLogger(__name__)

# =============================================================================
# SINGLETON DATABASE ENGINE
# =============================================================================

_shared_engine: Optional[Engine] = None
_shared_session_factory = None


def build_engine(database_url: str) -> Engine:
    """
    Create an engine with pool settings suited to the backend.

    - sqlite: no pool sizing, connections shared across threads
      (in-memory databases use a StaticPool so every session sees the same data)
    - others: pool_size=5, max_overflow=5, pool_recycle=1800, pre-ping
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, **kwargs)

    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=5,
        pool_timeout=30,
        pool_recycle=1800,
    )


def get_shared_engine() -> Engine:
    """
    Get the shared SQLAlchemy engine (Singleton).

    Returns:
        SQLAlchemy Engine instance
    """
    global _shared_engine

    if _shared_engine is None:
        try:
            _shared_engine = build_engine(settings.database_url)
            logger.info(f"Shared database engine created: {_shared_engine.url.get_backend_name()}")
        except Exception as e:
            logger.error(f"Failed to create shared database engine: {e}")
            raise

    return _shared_engine


def get_shared_session_factory():
    """
    Get the shared SQLAlchemy session factory (Singleton).

    Returns:
        SQLAlchemy sessionmaker bound to shared engine
    """
    global _shared_session_factory

    if _shared_session_factory is None:
        engine = get_shared_engine()
        _shared_session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        logger.info("Shared session factory created")

    return _shared_session_factory


def close_shared_engine():
    """
    Close the shared engine and release all connections.

    Call this during application shutdown.
    """
    global _shared_engine, _shared_session_factory

    if _shared_engine is not None:
        _shared_engine.dispose()
        _shared_engine = None
        _shared_session_factory = None
        logger.info("Shared database engine closed")
