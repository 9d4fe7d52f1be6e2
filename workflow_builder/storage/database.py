"""Database engine and session management."""

import os
from typing import Any, Dict, Optional
from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

DEFAULT_DATABASE_URL = "sqlite:///./workflow_builder.db"

Base = declarative_base()

# Bound to the process-wide engine by get_database_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

_engine: Optional[Engine] = None


def _engine_options(database_url: str, echo: bool, connect_args: Optional[dict]) -> Dict[str, Any]:
    if database_url.startswith("sqlite"):
        # one shared connection, usable from the request thread pool
        return {
            "echo": echo,
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False} if connect_args is None else connect_args,
        }
    return {"echo": echo, "pool_pre_ping": True, "connect_args": connect_args or {}}


def get_database_engine(database_url: Optional[str] = None,
                        echo: bool = False,
                        connect_args: Optional[dict] = None) -> Engine:
    """Return the process-wide engine, creating it on first use.

    Arguments only matter on the first call; ``database_url`` falls back to
    ``WORKFLOW_ENGINE_DATABASE_URL``.
    """
    global _engine

    if _engine is None:
        url = database_url or os.getenv("WORKFLOW_ENGINE_DATABASE_URL", DEFAULT_DATABASE_URL)
        _engine = create_engine(url, **_engine_options(url, echo, connect_args))
        SessionLocal.configure(bind=_engine)

    return _engine


def reset_database_engine():
    """Dispose of the process-wide engine (tests)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def get_db():
    """FastAPI dependency yielding one session per request."""
    get_database_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(engine: Optional[Engine] = None):
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=engine or get_database_engine())


def drop_tables(engine: Optional[Engine] = None):
    from . import models  # noqa: F401
    Base.metadata.drop_all(bind=engine or get_database_engine())
