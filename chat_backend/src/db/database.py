from __future__ import annotations

import logging
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from sqlalchemy.pool import StaticPool

logger = logging.getLogger("uvicorn.error")

Base = declarative_base()


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or url.startswith("sqlite:///:memory:?")


# PUBLIC_INTERFACE
def create_db_engine(url: str) -> Engine:
    """Create the SQLAlchemy engine for the configured database URL.

    In-memory SQLite shares one connection across threads so every session sees the same data.
    """
    if not url:
        raise RuntimeError("Database is not configured. Set DATABASE_URL in environment.")
    if _is_memory_sqlite(url):
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


# PUBLIC_INTERFACE
def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


# PUBLIC_INTERFACE
def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401  (register mappers on Base.metadata)

    Base.metadata.create_all(bind=engine)


# PUBLIC_INTERFACE
def ping(engine: Engine) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database ping failed: {e}")
        return False


# PUBLIC_INTERFACE
def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency to provide a database session.

    The session factory is created once at startup and kept on the application state.
    """
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise RuntimeError("Database is not initialized. Was the application lifespan started?")
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
