"""
findmyanime.services.library_service — Watchlist & manga library mutations
===========================================================================

Adds are single ``INSERT … ON CONFLICT`` statements so a repeated request
never produces a second row:

* watchlist — duplicate add is a no-op;
* manga library — duplicate add updates the stored status.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from findmyanime.database.engine import get_session
from findmyanime.database.models import LibraryStatus, MangaLibraryEntry, WatchlistEntry
from findmyanime.validation import coerce_choice, non_negative_count, positive_id

logger = logging.getLogger(__name__)


def _insert(session: Session, model: type):
    """Dialect-specific INSERT supporting ``on_conflict_*``."""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite.insert(model)
    return postgresql.insert(model)


# ---------------------------------------------------------------------------
# Watchlist
# ---------------------------------------------------------------------------
def add_to_watchlist(engine: Engine, user_id: int, anime_id) -> bool:
    """Add *anime_id*; returns False when it was already on the list."""
    anime_id = positive_id(anime_id, field="animeId")
    with get_session(engine) as session:
        stmt = (
            _insert(session, WatchlistEntry)
            .values(user_id=user_id, anime_id=anime_id)
            .on_conflict_do_nothing(index_elements=["user_id", "anime_id"])
        )
        return session.execute(stmt).rowcount > 0


def remove_from_watchlist(engine: Engine, user_id: int, anime_id) -> bool:
    anime_id = positive_id(anime_id, field="animeId")
    with get_session(engine) as session:
        result = session.execute(
            delete(WatchlistEntry).where(
                WatchlistEntry.user_id == user_id,
                WatchlistEntry.anime_id == anime_id,
            )
        )
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Manga library
# ---------------------------------------------------------------------------
def add_to_library(engine: Engine, user_id: int, manga_id, status=None) -> LibraryStatus:
    """Insert or re-status a manga.  Unknown statuses become ``plan_to_read``."""
    manga_id = positive_id(manga_id, field="mangaId")
    resolved = coerce_choice(status, LibraryStatus, LibraryStatus.PLAN_TO_READ)
    with get_session(engine) as session:
        stmt = _insert(session, MangaLibraryEntry).values(
            user_id=user_id,
            manga_id=manga_id,
            status=resolved.value,
            chapters_read=0,
            volumes_read=0,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "manga_id"],
            set_={"status": stmt.excluded.status},
        )
        session.execute(stmt)
    return resolved


def update_library_entry(
    engine: Engine,
    user_id: int,
    manga_id,
    *,
    status=None,
    chapters_read=None,
    volumes_read=None,
) -> bool:
    """Update progress on an existing entry; ``None`` fields stay unchanged.

    Returns False if the user has no entry for *manga_id*.
    """
    manga_id = positive_id(manga_id, field="mangaId")
    chapters = non_negative_count(chapters_read, field="chaptersRead")
    volumes = non_negative_count(volumes_read, field="volumesRead")

    with get_session(engine) as session:
        entry = session.scalars(
            select(MangaLibraryEntry).where(
                MangaLibraryEntry.user_id == user_id,
                MangaLibraryEntry.manga_id == manga_id,
            )
        ).first()
        if entry is None:
            return False
        if status is not None:
            entry.status = coerce_choice(
                status, LibraryStatus, LibraryStatus.PLAN_TO_READ
            ).value
        if chapters is not None:
            entry.chapters_read = chapters
        if volumes is not None:
            entry.volumes_read = volumes
        return True


def remove_from_library(engine: Engine, user_id: int, manga_id) -> bool:
    manga_id = positive_id(manga_id, field="mangaId")
    with get_session(engine) as session:
        result = session.execute(
            delete(MangaLibraryEntry).where(
                MangaLibraryEntry.user_id == user_id,
                MangaLibraryEntry.manga_id == manga_id,
            )
        )
        return result.rowcount > 0
