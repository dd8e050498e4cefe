from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_settings
from hypeos.db.models.base import Base


def create_db_engine(database_url: str | None = None, echo: bool | None = None) -> Engine:
    """
    Create an engine for the state database.

    SQLite file databases get their parent directory created; in-memory
    SQLite shares one connection so every session sees the same tables.
    """
    settings = get_settings()
    url = make_url(database_url or settings.database_url)
    if echo is None:
        echo = settings.log_level == "DEBUG"

    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    if url.database in (None, "", ":memory:"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, echo=echo)


def init_db(engine: Engine) -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized")


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()
