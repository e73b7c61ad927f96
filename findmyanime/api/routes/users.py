"""
findmyanime.api.routes.users — Profile stats, activity & the public feed
=========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from findmyanime.api.deps import get_current_user, get_session
from findmyanime.database.models import (
    MangaLibraryEntry,
    Post,
    Review,
    User,
    WatchlistEntry,
)
from findmyanime.services.auth_service import SessionUser

router = APIRouter(tags=["users"])

ACTIVITY_LIMIT = 10
FEED_LIMIT = 4


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _review_dict(r: Review, username: str | None = None) -> dict:
    data = {
        "id": r.id,
        "target_id": r.target_id,
        "target_type": r.target_type,
        "rating": r.rating,
        "comment": r.comment,
        "created_at": _iso(r.created_at),
    }
    if username is not None:
        data["username"] = username
    return data


def _post_dict(p: Post, username: str | None = None) -> dict:
    data = {
        "id": p.id,
        "content": p.content,
        "category": p.category,
        "created_at": _iso(p.created_at),
    }
    if username is not None:
        data["username"] = username
    return data


def _count(session: Session, model, user_id: int) -> int:
    return session.scalar(
        select(func.count()).select_from(model).where(model.user_id == user_id)
    ) or 0


# ---------------------------------------------------------------------------
# GET /user/stats
# ---------------------------------------------------------------------------
@router.get("/user/stats")
def get_user_stats(
    user: SessionUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return {
        "animeCount": _count(session, WatchlistEntry, user.id),
        "mangaCount": _count(session, MangaLibraryEntry, user.id),
        "reviewCount": _count(session, Review, user.id),
        "postCount": _count(session, Post, user.id),
    }


# ---------------------------------------------------------------------------
# GET /user/activity
# ---------------------------------------------------------------------------
@router.get("/user/activity")
def get_user_activity(
    user: SessionUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """The caller's ten most recent reviews and posts."""
    reviews = session.scalars(
        select(Review)
        .where(Review.user_id == user.id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(ACTIVITY_LIMIT)
    ).all()
    posts = session.scalars(
        select(Post)
        .where(Post.user_id == user.id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(ACTIVITY_LIMIT)
    ).all()
    return {
        "recentReviews": [_review_dict(r) for r in reviews],
        "recentPosts": [_post_dict(p) for p in posts],
    }


# ---------------------------------------------------------------------------
# GET /feed/recent — public homepage feed
# ---------------------------------------------------------------------------
@router.get("/feed/recent")
def get_recent_feed(session: Session = Depends(get_session)):
    reviews = session.execute(
        select(Review, User.username)
        .join(User, Review.user_id == User.id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(FEED_LIMIT)
    ).all()
    posts = session.execute(
        select(Post, User.username)
        .join(User, Post.user_id == User.id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(FEED_LIMIT)
    ).all()
    return {
        "recentReviews": [_review_dict(r, name) for r, name in reviews],
        "recentPosts": [_post_dict(p, name) for p, name in posts],
    }
