"""
findmyanime.api.auth — Signup, login, logout and session introspection
=======================================================================
"""

from __future__ import annotations

import logging
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel
from sqlalchemy import Engine

from findmyanime.api.deps import (
    encode_session_cookie,
    get_config,
    get_engine,
    get_optional_user,
    session_token,
)
from findmyanime.api.rate_limit import rate_limited_auth
from findmyanime.config import AppConfig
from findmyanime.database.engine import run_db
from findmyanime.services import auth_service, session_service
from findmyanime.services.auth_service import SessionUser, UsernameTakenError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])


class Credentials(BaseModel):
    username: str | None = None
    password: str | None = None


def _set_session_cookie(response: Response, cfg: AppConfig, token: str) -> None:
    response.set_cookie(
        key=cfg.session_cookie_name,
        value=encode_session_cookie(token, cfg.session_max_age),
        max_age=cfg.session_max_age,
        httponly=True,
        secure=cfg.production,
        samesite="none" if cfg.production else "lax",
        path="/",
    )


async def _open_session(
    response: Response, engine: Engine, cfg: AppConfig, user: SessionUser
) -> None:
    token = await run_db(
        session_service.create_session,
        engine,
        user.id,
        timedelta(days=cfg.session_ttl_days),
    )
    _set_session_cookie(response, cfg, token)


@router.post("/signup", dependencies=[Depends(rate_limited_auth)])
async def signup(
    body: Credentials,
    response: Response,
    engine: Engine = Depends(get_engine),
    cfg: AppConfig = Depends(get_config),
):
    """Create an account and log it in."""
    try:
        user = await run_db(auth_service.create_user, engine, body.username, body.password)
    except UsernameTakenError:
        raise HTTPException(status.HTTP_409_CONFLICT, "User already exists")
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc))

    await _open_session(response, engine, cfg, user)
    return {"user": user.username}


@router.post("/login", dependencies=[Depends(rate_limited_auth)])
async def login(
    body: Credentials,
    response: Response,
    engine: Engine = Depends(get_engine),
    cfg: AppConfig = Depends(get_config),
):
    user = await run_db(auth_service.authenticate, engine, body.username, body.password)
    if user is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid credentials")

    await _open_session(response, engine, cfg, user)
    logger.info("User %s logged in", user.username)
    return {"user": user.username}


@router.post("/logout")
async def logout(
    response: Response,
    token: str | None = Depends(session_token),
    engine: Engine = Depends(get_engine),
    cfg: AppConfig = Depends(get_config),
):
    if token is not None:
        await run_db(session_service.destroy_session, engine, token)
    response.delete_cookie(
        cfg.session_cookie_name,
        path="/",
        httponly=True,
        secure=cfg.production,
        samesite="none" if cfg.production else "lax",
    )
    return {"success": True}


@router.get("/me")
def me(user: SessionUser | None = Depends(get_optional_user)):
    """Return the logged-in user, or ``{"user": null}``."""
    return {"user": user.to_dict() if user else None}
