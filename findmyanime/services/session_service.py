"""
findmyanime.services.session_service — Server-side session store
==================================================================

Each login creates a ``user_sessions`` row keyed by an opaque random
token.  The cookie only carries a signed reference to that token (see
:mod:`findmyanime.api.deps`); the row is the source of truth, so logout
and expiry take effect immediately regardless of what the browser keeps.

Expired rows are pruned whenever a session is created and by
:class:`SessionSweeper`, a background task started from the API lifespan.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import UTC, datetime, timedelta

from sqlalchemy import Engine, delete

from findmyanime.database.engine import get_session, run_db
from findmyanime.database.models import AuthAttempt, User, UserSession
from findmyanime.services.auth_service import SessionUser

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=7)


def _normalize_dt(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def create_session(
    engine: Engine, user_id: int, ttl: timedelta = DEFAULT_TTL
) -> str:
    """Persist a new session for *user_id* and return its token."""
    now = datetime.now(UTC)
    token = secrets.token_urlsafe(32)
    with get_session(engine) as session:
        session.execute(delete(UserSession).where(UserSession.expires_at < now))
        session.add(UserSession(token=token, user_id=user_id, expires_at=now + ttl))
    return token


def resolve_session(engine: Engine, token: str) -> SessionUser | None:
    """Return the identity behind *token*, or ``None`` if unknown or expired."""
    with get_session(engine) as session:
        row = session.get(UserSession, token)
        if row is None:
            return None
        if _normalize_dt(row.expires_at) <= datetime.now(UTC):
            session.delete(row)
            return None
        user = session.get(User, row.user_id)
        if user is None:
            return None
        return SessionUser(id=user.id, username=user.username)


def destroy_session(engine: Engine, token: str) -> bool:
    """Delete the session row.  Returns False if it was already gone."""
    with get_session(engine) as session:
        result = session.execute(delete(UserSession).where(UserSession.token == token))
        return result.rowcount > 0


def sweep_expired_sessions(
    engine: Engine, auth_window_seconds: int = 15 * 60
) -> dict[str, int]:
    """Delete expired sessions and auth-limiter entries outside their window."""
    now = datetime.now(UTC)
    with get_session(engine) as session:
        sessions = session.execute(
            delete(UserSession).where(UserSession.expires_at <= now)
        ).rowcount
        attempts = session.execute(
            delete(AuthAttempt).where(
                AuthAttempt.timestamp < now - timedelta(seconds=auth_window_seconds)
            )
        ).rowcount
    return {"sessions_deleted": sessions, "attempts_deleted": attempts}


class SessionSweeper:
    """Background task that runs :func:`sweep_expired_sessions` periodically."""

    def __init__(
        self,
        engine: Engine,
        interval: float = 3600,
        auth_window_seconds: int = 15 * 60,
    ) -> None:
        self.engine = engine
        self.interval = interval
        self.auth_window_seconds = auth_window_seconds
        self._task: asyncio.Task | None = None

    async def sweep_once(self) -> dict[str, int]:
        summary = await run_db(
            sweep_expired_sessions, self.engine, self.auth_window_seconds
        )
        if summary["sessions_deleted"] or summary["attempts_deleted"]:
            logger.info(
                "Session sweep: %d sessions, %d auth attempts removed",
                summary["sessions_deleted"], summary["attempts_deleted"],
            )
        return summary

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self._task is not None:
            return

        async def _sweep_loop() -> None:
            while True:
                await asyncio.sleep(self.interval)
                try:
                    await self.sweep_once()
                except Exception:
                    logger.exception("Session sweep error")

        self._task = asyncio.get_running_loop().create_task(
            _sweep_loop(), name="session-sweep"
        )

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
