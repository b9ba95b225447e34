"""
skillswap.api.deps — FastAPI dependency injection
==================================================

Caller identity comes from a bearer JWT whose ``sub`` is the member id.
Tokens are issued elsewhere; this module only verifies them.  Every
authenticated request then goes through
:func:`~skillswap.services.member_service.authenticate_member`, which lifts
expired bans and refuses banned members.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from skillswap.config import SkillSwapConfig, load_config
from skillswap.database.engine import create_db_engine
from skillswap.database.models import Member
from skillswap.errors import Forbidden, NotFound
from skillswap.services import member_service

_WEAK_SECRETS = frozenset({
    "skillswap-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, a known
    weak default, or shorter than 32 characters.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> SkillSwapConfig:
    path = os.getenv("SKILLSWAP_CONFIG", "config.yaml")
    if not os.path.exists(path):
        return SkillSwapConfig()
    return load_config(path)


def _member_id_from(authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    member_id = payload.get("sub")
    if not member_id:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    return str(member_id)


def get_current_member(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> Member:
    """Authenticated caller.  401 for a bad token or unknown member; banned
    members get the 403 raised by ``authenticate_member``."""
    member_id = _member_id_from(authorization)
    try:
        return member_service.authenticate_member(engine, member_id)
    except NotFound:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Member not found")


def get_optional_member(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> Member | None:
    """Caller if a token is present, else ``None`` (public reads)."""
    if not authorization:
        return None
    return get_current_member(authorization, engine)


def get_current_moderator(member: Member = Depends(get_current_member)) -> Member:
    if not member.is_moderator:
        raise Forbidden("Moderator access required")
    return member
