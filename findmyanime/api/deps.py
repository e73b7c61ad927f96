"""
findmyanime.api.deps — FastAPI dependency injection
====================================================

The session cookie holds a short HS256 token whose ``sid`` claim names a
``user_sessions`` row.  Signing keeps clients from guessing or forging
session ids; the row decides whether the session is still alive.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from findmyanime.catalog.client import CatalogClient
from findmyanime.config import AppConfig, load_config
from findmyanime.database.engine import create_db_engine
from findmyanime.services.auth_service import SessionUser
from findmyanime.services.session_service import resolve_session

_WEAK_SECRETS = frozenset({
    "dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

SESSION_ALGORITHM = "HS256"


def _load_session_secret() -> str:
    """Load and validate SESSION_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("SESSION_SECRET", "")
    if not secret:
        raise RuntimeError(
            "SESSION_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"SESSION_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"SESSION_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


SESSION_SECRET: str = _load_session_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return load_config()


def get_session(engine: Annotated[Engine, Depends(get_engine)]):
    with Session(engine) as session:
        yield session


def get_catalog(request: Request) -> CatalogClient:
    """The process-wide catalog client created in the app lifespan."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Catalog not ready")
    return catalog


# ---------------------------------------------------------------------------
# Session cookie encoding
# ---------------------------------------------------------------------------
def encode_session_cookie(token: str, max_age: int) -> str:
    payload = {
        "sid": token,
        "exp": datetime.now(UTC) + timedelta(seconds=max_age),
    }
    return jwt.encode(payload, SESSION_SECRET, algorithm=SESSION_ALGORITHM)


def decode_session_cookie(value: str | None) -> str | None:
    """Return the session token inside a cookie value, or None if invalid."""
    if not value:
        return None
    try:
        payload = jwt.decode(value, SESSION_SECRET, algorithms=[SESSION_ALGORITHM])
    except InvalidTokenError:
        return None
    sid = payload.get("sid")
    return sid if isinstance(sid, str) else None


def session_token(
    request: Request, cfg: AppConfig = Depends(get_config)
) -> str | None:
    return decode_session_cookie(request.cookies.get(cfg.session_cookie_name))


def get_optional_user(
    token: str | None = Depends(session_token),
    engine: Engine = Depends(get_engine),
) -> SessionUser | None:
    """Identity of the caller, or None when there is no live session."""
    if token is None:
        return None
    return resolve_session(engine, token)


def get_current_user(
    user: SessionUser | None = Depends(get_optional_user),
) -> SessionUser:
    """Require a live session.  Raises 401 before the handler body runs."""
    if user is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Login required")
    return user
