"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# JWT_SECRET must be set before skillswap.api.deps is imported; it
# validates the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.ext.compiler import compiles  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from skillswap.constants import MemberRole  # noqa: E402
from skillswap.database.engine import create_db_engine, init_db  # noqa: E402
from skillswap.services import member_service  # noqa: E402


# ---------------------------------------------------------------------------
# SQLite has no JSONB; render it as TEXT (SQLAlchemy's JSON handling still
# serialises the audit snapshots).
# ---------------------------------------------------------------------------
@compiles(PG_JSONB, "sqlite")
def _compile_jsonb_as_text(type_, compiler, **kw):
    return "TEXT"


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with every SkillSwap table.

    StaticPool shares one connection across threads, which the FastAPI
    TestClient needs for sync endpoints.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine: every session gets its own connection,
    so one session can observe another's committed writes."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'skillswap.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


# ---------------------------------------------------------------------------
# Member factories
# ---------------------------------------------------------------------------
def make_member(engine, name: str, *, offers=(), wants=(), role=MemberRole.MEMBER):
    return member_service.register_member(
        engine,
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        role=role,
        skills_offered=[{"skill": s} for s in offers],
        skills_wanted=[{"skill": s} for s in wants],
    )


@pytest.fixture
def members(db_engine):
    """Alice teaches Guitar, Bob teaches Photography, Mo moderates."""
    return {
        "alice": make_member(db_engine, "Alice", offers=["Guitar"], wants=["Photography"]),
        "bob": make_member(db_engine, "Bob", offers=["Photography"], wants=["Guitar"]),
        "carol": make_member(db_engine, "Carol", offers=["Cooking"]),
        "mod": make_member(db_engine, "Mo", role=MemberRole.MODERATOR),
    }


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
def make_token(member_id: str) -> str:
    import jwt

    from skillswap.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": member_id}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def auth(member) -> dict:
    return {"Authorization": f"Bearer {make_token(member.id)}"}


@pytest.fixture
def client(db_engine):
    """TestClient bound to the in-memory engine."""
    from fastapi.testclient import TestClient

    from skillswap.api.deps import get_config, get_engine
    from skillswap.api.main import app
    from skillswap.config import SkillSwapConfig

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: SkillSwapConfig()
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
