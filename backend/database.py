"""
Database engine and session factory shared by the API and Celery workers.
"""

from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from api.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Build create_engine keyword arguments for a database URL.

    SQLite (used for local runs and tests) does not take pool sizing.
    """
    if database_url.startswith('sqlite'):
        return {
            'connect_args': {'check_same_thread': False},
            'echo': settings.DEBUG
        }

    return {
        'pool_size': settings.DB_POOL_SIZE,
        'max_overflow': settings.DB_MAX_OVERFLOW,
        'pool_pre_ping': settings.DB_POOL_PRE_PING,
        'echo': settings.DEBUG
    }


def make_engine(database_url: str = None) -> Engine:
    """Create an engine for the given URL (default: settings.DATABASE_URL)."""
    url = database_url or settings.DATABASE_URL
    return create_engine(url, **engine_options(url))


engine = make_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
