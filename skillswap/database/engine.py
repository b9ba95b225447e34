"""
skillswap.database.engine — Database Connection & Session Helper
=================================================================

Every service function takes an :class:`Engine` and opens its own short
:class:`Session`, so each operation is one request-scoped transaction.

Usage::

    from skillswap.database.engine import create_db_engine, init_db, get_session

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    with get_session(engine) as session:
        session.add(Member(email="ada@example.com", name="Ada"))
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from skillswap.database.models import Base

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` from *url* or ``DATABASE_URL``.

    Pool settings:
    * ``pool_size=5``: five persistent connections.
    * ``max_overflow=10``: up to 10 extra connections under load.
    * ``pool_timeout=10``: fail after 10 s if no connection is available.
    * ``pool_recycle=3600``: recycle connections after 1 hour.

    SQLite URLs skip the pool tuning (SQLite uses its own pool classes).

    Raises
    ------
    RuntimeError
        If neither *url* nor ``DATABASE_URL`` is set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    if url.startswith("sqlite"):
        engine = create_engine(url, echo=False)
    else:
        engine = create_engine(
            url,
            echo=False,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_timeout=10,
            pool_recycle=3600,
        )
    logger.info("Database engine created → %s", engine.url.host or engine.url.database)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`skillswap.database.models`.

    .. note::

        In production the schema is managed by Alembic (``alembic upgrade
        head``).  ``create_all`` is kept for dev/test environments.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success and rolls back on
    exception.  Objects stay readable after the block exits.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
