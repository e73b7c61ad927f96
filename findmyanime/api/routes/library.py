"""
findmyanime.api.routes.library — Watchlist & manga library (session-guarded)
=============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from findmyanime.api.deps import get_current_user, get_engine, get_session
from findmyanime.database.models import MangaLibraryEntry, WatchlistEntry
from findmyanime.services import library_service
from findmyanime.services.auth_service import SessionUser
from findmyanime.validation import Counter, RowId, clamp_paging

router = APIRouter(tags=["library"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class WatchlistChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    anime_id: RowId | None = Field(None, alias="animeId")


class LibraryAdd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    manga_id: RowId | None = Field(None, alias="mangaId")
    status: str | None = None


class LibraryUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    manga_id: RowId | None = Field(None, alias="mangaId")
    status: str | None = None
    chapters_read: Counter | None = Field(None, alias="chaptersRead")
    volumes_read: Counter | None = Field(None, alias="volumesRead")


class LibraryRemove(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    manga_id: RowId | None = Field(None, alias="mangaId")


# ---------------------------------------------------------------------------
# Watchlist
# ---------------------------------------------------------------------------
@router.get("/watchlist")
def get_watchlist(
    page: int | None = Query(None),
    limit: int | None = Query(None),
    user: SessionUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Anime ids on the caller's watchlist, newest first."""
    _, limit, offset = clamp_paging(page, limit, default_limit=100)
    rows = session.scalars(
        select(WatchlistEntry.anime_id)
        .where(WatchlistEntry.user_id == user.id)
        .order_by(WatchlistEntry.created_at.desc(), WatchlistEntry.id.desc())
        .offset(offset)
        .limit(limit)
    ).all()
    return list(rows)


@router.post("/watchlist/add")
def add_to_watchlist(
    body: WatchlistChange,
    user: SessionUser = Depends(get_current_user),
    engine=Depends(get_engine),
):
    try:
        added = library_service.add_to_watchlist(engine, user.id, body.anime_id)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"success": True, "added": added}


@router.post("/watchlist/remove")
def remove_from_watchlist(
    body: WatchlistChange,
    user: SessionUser = Depends(get_current_user),
    engine=Depends(get_engine),
):
    try:
        removed = library_service.remove_from_watchlist(engine, user.id, body.anime_id)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"success": True, "removed": removed}


# ---------------------------------------------------------------------------
# Manga library
# ---------------------------------------------------------------------------
@router.get("/manga-library")
def get_manga_library(
    page: int | None = Query(None),
    limit: int | None = Query(None),
    user: SessionUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    _, limit, offset = clamp_paging(page, limit, default_limit=100)
    rows = session.scalars(
        select(MangaLibraryEntry)
        .where(MangaLibraryEntry.user_id == user.id)
        .order_by(MangaLibraryEntry.created_at.desc(), MangaLibraryEntry.id.desc())
        .offset(offset)
        .limit(limit)
    ).all()
    return [
        {
            "manga_id": e.manga_id,
            "status": e.status,
            "chapters_read": e.chapters_read,
            "volumes_read": e.volumes_read,
        }
        for e in rows
    ]


@router.post("/manga-library/add")
def add_to_manga_library(
    body: LibraryAdd,
    user: SessionUser = Depends(get_current_user),
    engine=Depends(get_engine),
):
    try:
        status = library_service.add_to_library(engine, user.id, body.manga_id, body.status)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"success": True, "status": status.value}


@router.post("/manga-library/update")
def update_manga_library(
    body: LibraryUpdate,
    user: SessionUser = Depends(get_current_user),
    engine=Depends(get_engine),
):
    try:
        updated = library_service.update_library_entry(
            engine,
            user.id,
            body.manga_id,
            status=body.status,
            chapters_read=body.chapters_read,
            volumes_read=body.volumes_read,
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"success": True, "updated": updated}


@router.post("/manga-library/remove")
def remove_from_manga_library(
    body: LibraryRemove,
    user: SessionUser = Depends(get_current_user),
    engine=Depends(get_engine),
):
    try:
        removed = library_service.remove_from_library(engine, user.id, body.manga_id)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"success": True, "removed": removed}
