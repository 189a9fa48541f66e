"""Engine and session management."""

from collections.abc import Iterator

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from mealplanner.config.settings import settings

logger = structlog.get_logger()

_engine: Engine | None = None


def configure_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the engine for ``database_url`` and make it the active one."""
    global _engine

    kwargs: dict = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # In-memory databases only live as long as their single connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    if _engine is not None:
        _engine.dispose()
    _engine = create_engine(database_url, **kwargs)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        return configure_engine(settings.database.database_url, settings.database.echo_sql)
    return _engine


async def init_db() -> None:
    """Create tables if they do not exist."""
    # Register table metadata
    from mealplanner.db import models  # noqa: F401

    SQLModel.metadata.create_all(get_engine())
    logger.info("Database tables ready")


async def close_db() -> None:
    global _engine

    if _engine is not None:
        _engine.dispose()
        _engine = None


def get_session() -> Iterator[Session]:
    """Yield a session; usable as a FastAPI dependency."""
    with Session(get_engine()) as session:
        yield session
