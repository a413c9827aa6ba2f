"""
Engine and session factories.

The engine is built lazily from ``DATABASE_URL`` so tests can point it at
SQLite before anything connects. PostgreSQL gets a real pool; SQLite is
opened with ``check_same_thread=False`` because the unit of work may be
used from worker threads, and ``:memory:`` databases share one connection
so every session sees the same tables.
"""

import logging
import os
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from gymcore.core.db import register_query_timing

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///./gymcore.db"

POSTGRES_ENGINE_OPTIONS: Dict[str, Any] = {
    "pool_size": 20,
    "max_overflow": 40,
    "pool_pre_ping": True,
    "pool_recycle": 3600,
    "connect_args": {"application_name": "gymcore", "connect_timeout": 10},
}

_engine = None
_engine_url = None
_session_factory = None


def _engine_options(database_url: str) -> Dict[str, Any]:
    url = make_url(database_url)
    if url.get_backend_name() == "postgresql":
        return dict(POSTGRES_ENGINE_OPTIONS)
    if url.get_backend_name() == "sqlite":
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options
    return {}


def build_engine(database_url: str) -> Engine:
    """Engine for ``database_url`` with settings chosen by backend."""
    return create_engine(database_url, echo=False, **_engine_options(database_url))


def make_sessionmaker(engine: Engine) -> sessionmaker:
    # expire_on_commit=False: domain objects are built after commit
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_engine() -> Engine:
    """Process-wide engine, rebuilt if ``DATABASE_URL`` changed."""
    global _engine, _engine_url, _session_factory
    database_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    if _engine is not None and _engine_url == database_url:
        return _engine

    if _engine is not None:
        _engine.dispose()
    _engine = build_engine(database_url)
    _engine_url = database_url
    _session_factory = None
    register_query_timing(_engine)
    logger.info(
        "Database engine created",
        extra={
            "context": {
                "dialect": _engine.dialect.name,
                "database": _engine.url.database,
            }
        },
    )
    return _engine


def get_sessionmaker() -> sessionmaker:
    global _session_factory
    engine = get_engine()
    if _session_factory is None:
        _session_factory = make_sessionmaker(engine)
    return _session_factory


def create_tables(engine=None) -> None:
    """Create every mapped table that does not exist yet."""
    from gymcore.db import base  # noqa: F401  (registers the models)

    Base.metadata.create_all(bind=engine or get_engine())
