"""
findmyanime.api.routes.reviews — Ratings and comments on anime/manga
=====================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field, StrictInt
from sqlalchemy import select
from sqlalchemy.orm import Session

from findmyanime.api.deps import get_current_user, get_engine, get_session
from findmyanime.database.models import Review, TargetType, User
from findmyanime.services import community_service
from findmyanime.services.auth_service import SessionUser
from findmyanime.validation import MAX_DB_INT, RowId, clamp_paging, coerce_choice

router = APIRouter(tags=["reviews"])


class ReviewCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_id: RowId | None = Field(None, alias="targetId")
    target_type: str | None = Field(None, alias="targetType")
    rating: StrictInt | None = None
    comment: str | None = None


@router.get("/reviews/{target_id}")
def list_reviews(
    target_id: int,
    type: str = Query(TargetType.ANIME.value),
    page: int | None = Query(None),
    limit: int | None = Query(None),
    session: Session = Depends(get_session),
):
    """Reviews for one anime or manga, newest first."""
    if not 0 < target_id <= MAX_DB_INT:
        raise HTTPException(400, "Invalid target id")
    target_type = coerce_choice(type, TargetType, TargetType.ANIME)
    _, limit, offset = clamp_paging(page, limit, default_limit=30)
    rows = session.execute(
        select(Review, User.username)
        .join(User, Review.user_id == User.id)
        .where(Review.target_id == target_id, Review.target_type == target_type.value)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .offset(offset)
        .limit(limit)
    ).all()
    return [
        {
            "id": r.id,
            "rating": r.rating,
            "comment": r.comment,
            "created_at": r.created_at.isoformat() if r.created_at else None,
            "username": username,
        }
        for r, username in rows
    ]


@router.post("/reviews")
def create_review(
    body: ReviewCreate,
    user: SessionUser = Depends(get_current_user),
    engine=Depends(get_engine),
):
    try:
        review_id = community_service.create_review(
            engine,
            user.id,
            body.target_id,
            body.target_type,
            body.rating,
            body.comment,
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"success": True, "id": review_id}
