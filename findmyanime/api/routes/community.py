"""
findmyanime.api.routes.community — Posts, likes and replies
=============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from findmyanime.api.deps import get_current_user, get_engine, get_optional_user, get_session
from findmyanime.database.models import Post, PostCategory, PostLike, PostReply, User
from findmyanime.services import community_service
from findmyanime.services.auth_service import SessionUser
from findmyanime.services.community_service import PostNotFoundError
from findmyanime.validation import MAX_DB_INT, clamp_paging

router = APIRouter(tags=["community"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class PostCreate(BaseModel):
    content: str | None = None
    category: str | None = None


class ReplyCreate(BaseModel):
    content: str | None = None


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _check_post_id(post_id: int) -> None:
    if not 0 < post_id <= MAX_DB_INT:
        raise HTTPException(400, "Invalid post id")


# ---------------------------------------------------------------------------
# GET /posts
# ---------------------------------------------------------------------------
@router.get("/posts")
def list_posts(
    page: int | None = Query(None),
    limit: int | None = Query(None),
    sort: str = Query("newest"),
    category: str | None = Query(None),
    viewer: SessionUser | None = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    """Paginated community feed with like/reply counts."""
    page, limit, offset = clamp_paging(page, limit, default_limit=50)

    like_count = (
        select(func.count())
        .select_from(PostLike)
        .where(PostLike.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )
    reply_count = (
        select(func.count())
        .select_from(PostReply)
        .where(PostReply.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )

    query = select(Post, User.username, like_count, reply_count).join(
        User, Post.user_id == User.id
    )
    if category in {c.value for c in PostCategory}:
        query = query.where(Post.category == category)
    if sort == "oldest":
        query = query.order_by(Post.created_at.asc(), Post.id.asc())
    else:
        query = query.order_by(Post.created_at.desc(), Post.id.desc())

    rows = session.execute(query.offset(offset).limit(limit)).all()

    liked_ids: set[int] = set()
    if viewer is not None and rows:
        liked_ids = set(
            session.scalars(
                select(PostLike.post_id).where(
                    PostLike.user_id == viewer.id,
                    PostLike.post_id.in_([p.id for p, *_ in rows]),
                )
            ).all()
        )

    return [
        {
            "id": p.id,
            "content": p.content,
            "category": p.category,
            "created_at": _iso(p.created_at),
            "username": username,
            "like_count": likes or 0,
            "reply_count": replies or 0,
            "liked": p.id in liked_ids,
        }
        for p, username, likes, replies in rows
    ]


# ---------------------------------------------------------------------------
# POST /posts
# ---------------------------------------------------------------------------
@router.post("/posts")
def create_post(
    body: PostCreate,
    user: SessionUser = Depends(get_current_user),
    engine=Depends(get_engine),
):
    try:
        post_id = community_service.create_post(engine, user.id, body.content, body.category)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"success": True, "id": post_id}


# ---------------------------------------------------------------------------
# POST /posts/{post_id}/like — toggle
# ---------------------------------------------------------------------------
@router.post("/posts/{post_id}/like")
def toggle_like(
    post_id: int,
    user: SessionUser = Depends(get_current_user),
    engine=Depends(get_engine),
):
    """Like the post, or remove the like if the caller already liked it."""
    _check_post_id(post_id)
    try:
        liked, likes = community_service.toggle_like(engine, user.id, post_id)
    except PostNotFoundError:
        raise HTTPException(404, "Post not found")
    return {"liked": liked, "likes": likes}


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------
@router.get("/posts/{post_id}/replies")
def list_replies(
    post_id: int,
    page: int | None = Query(None),
    limit: int | None = Query(None),
    session: Session = Depends(get_session),
):
    """Replies in the order they were written."""
    _check_post_id(post_id)
    if session.get(Post, post_id) is None:
        raise HTTPException(404, "Post not found")
    _, limit, offset = clamp_paging(page, limit, default_limit=50)
    rows = session.execute(
        select(PostReply, User.username)
        .join(User, PostReply.user_id == User.id)
        .where(PostReply.post_id == post_id)
        .order_by(PostReply.created_at.asc(), PostReply.id.asc())
        .offset(offset)
        .limit(limit)
    ).all()
    return [
        {
            "id": r.id,
            "content": r.content,
            "created_at": _iso(r.created_at),
            "username": username,
        }
        for r, username in rows
    ]


@router.post("/posts/{post_id}/reply")
def create_reply(
    post_id: int,
    body: ReplyCreate,
    user: SessionUser = Depends(get_current_user),
    engine=Depends(get_engine),
):
    _check_post_id(post_id)
    try:
        reply_id = community_service.add_reply(engine, user.id, post_id, body.content)
    except PostNotFoundError:
        raise HTTPException(404, "Post not found")
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"success": True, "id": reply_id}
