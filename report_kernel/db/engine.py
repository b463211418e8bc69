"""
Module: report_kernel.db.engine
Responsibility: One process-wide connection to the movements store.
Architecture position: Kernel > DB.  Imports db/base.py only; the schema
    helpers import models lazily so the metadata is complete.

An in-memory SQLite URL (``sqlite://``) is pinned to a single shared
connection, otherwise every session would open its own empty database.
Server databases get a small pre-pinged pool; rendering is read-mostly.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from report_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Movements database not initialized. Call init_engine_from_url() first."

_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None


def _engine_options(url: URL, pool_size: int, max_overflow: int) -> dict:
    if url.get_backend_name() == "sqlite":
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 5,
) -> Engine:
    """Connect to ``database_url``, replacing any engine from a prior call."""
    global _engine, _sessions

    reset_engine()
    url = make_url(database_url)
    _engine = create_engine(url, echo=echo, **_engine_options(url, pool_size, max_overflow))
    _sessions = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "movements_store_connected",
        extra={"dialect": url.get_backend_name(), "database": url.database},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """A new session on the movements store; the caller closes it."""
    if _sessions is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _sessions()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Session that commits when the block exits cleanly.

    Used by loaders that seed the movements table.  Any exception rolls the
    session back and propagates.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("movements_write_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from report_kernel.db.base import Base
    from report_kernel.models import movement  # noqa: F401

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from report_kernel.db.base import Base
    from report_kernel.models import movement  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the current engine, if any."""
    global _engine, _sessions

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None
