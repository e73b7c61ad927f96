"""
findmyanime.api.rate_limit — Signup/Login Rate Limiting
========================================================

Caps credential attempts at 50 per 15-minute sliding window per client
address.  State lives in the ``auth_attempts`` table so it survives
restarts.  Returns HTTP 429 with a ``Retry-After`` header when exceeded.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import Engine, delete, func, select
from sqlalchemy.orm import Session

from findmyanime.api.deps import get_engine
from findmyanime.database.models import AuthAttempt

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = 50
DEFAULT_WINDOW_SECONDS = 15 * 60


class AuthRateLimiter:
    """Sliding-window rate limiter keyed by client address."""

    def __init__(
        self,
        max_requests: int = DEFAULT_RATE_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        *,
        engine: Engine,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.engine = engine

    def _normalize_dt(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def hit(self, client_key: str) -> tuple[bool, dict[str, Any]]:
        """Count one attempt for *client_key* if it is within the limit.

        Returns (allowed, info) where info contains:
          - remaining: attempts remaining in the window
          - reset: seconds until the oldest attempt expires
          - limit: the max attempts per window
        """
        now = datetime.now(UTC)
        cutoff = now - timedelta(seconds=self.window_seconds)

        with Session(self.engine) as session:
            session.execute(
                delete(AuthAttempt).where(
                    AuthAttempt.client_key == client_key,
                    AuthAttempt.timestamp < cutoff,
                )
            )
            oldest = session.scalar(
                select(func.min(AuthAttempt.timestamp))
                .where(AuthAttempt.client_key == client_key)
            )
            count = session.scalar(
                select(func.count())
                .select_from(AuthAttempt)
                .where(AuthAttempt.client_key == client_key)
            ) or 0

            if count >= self.max_requests:
                session.commit()
                reset = (
                    self._normalize_dt(oldest)
                    + timedelta(seconds=self.window_seconds)
                    - now
                ).total_seconds()
                return False, {
                    "remaining": 0,
                    "reset": max(1, int(reset) + 1),
                    "limit": self.max_requests,
                }

            session.add(AuthAttempt(client_key=client_key, timestamp=now))
            session.commit()

        return True, {
            "remaining": max(0, self.max_requests - count - 1),
            "reset": self.window_seconds,
            "limit": self.max_requests,
        }

    def reset(self, client_key: str | None = None) -> None:
        """Clear limiter state. If client_key is None, clear all."""
        with Session(self.engine) as session:
            if client_key is None:
                session.execute(delete(AuthAttempt))
            else:
                session.execute(
                    delete(AuthAttempt).where(AuthAttempt.client_key == client_key)
                )
            session.commit()


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------
_limiter: AuthRateLimiter | None = None


def get_rate_limiter() -> AuthRateLimiter | None:
    """Return the global limiter instance (None until configured)."""
    return _limiter


def configure_rate_limiter(
    *,
    engine: Engine,
    max_requests: int = DEFAULT_RATE_LIMIT,
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
) -> None:
    """Configure the global limiter to use durable DB-backed storage."""
    global _limiter
    _limiter = AuthRateLimiter(
        max_requests=max_requests,
        window_seconds=window_seconds,
        engine=engine,
    )


def _client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()[:100]
    return request.client.host if request.client else "unknown"


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------
async def rate_limited_auth(
    request: Request,
    engine: Engine = Depends(get_engine),
) -> None:
    """Enforce the credential-attempt limit.  Raises HTTP 429 when exceeded."""
    limiter = get_rate_limiter()
    if limiter is None:
        configure_rate_limiter(engine=engine)
        limiter = get_rate_limiter()

    client_key = _client_key(request)
    allowed, info = await asyncio.to_thread(limiter.hit, client_key)

    if not allowed:
        logger.warning(
            "Auth rate limit exceeded for %s: %d attempts per %ds",
            client_key, limiter.max_requests, limiter.window_seconds,
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "rate_limit_exceeded",
                "message": "Too many login attempts. Please try again later.",
                "retry_after": info["reset"],
            },
            headers={"Retry-After": str(info["reset"])},
        )
