"""
findmyanime.services.community_service — Posts, likes, replies, reviews
=========================================================================
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from findmyanime.database.engine import get_session
from findmyanime.database.models import (
    Post,
    PostCategory,
    PostLike,
    PostReply,
    Review,
    TargetType,
)
from findmyanime.validation import (
    POST_MAX_LENGTH,
    REPLY_MAX_LENGTH,
    REVIEW_MAX_LENGTH,
    clean_text,
    coerce_choice,
    positive_id,
    validate_rating,
)

logger = logging.getLogger(__name__)


class PostNotFoundError(LookupError):
    """The referenced post does not exist."""


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------
def create_post(engine: Engine, user_id: int, content, category=None) -> int:
    """Store a trimmed, length-capped post and return its id."""
    text = clean_text(content, POST_MAX_LENGTH)
    resolved = coerce_choice(category, PostCategory, PostCategory.DISCUSSION)
    with get_session(engine) as session:
        post = Post(user_id=user_id, content=text, category=resolved.value)
        session.add(post)
        session.flush()
        return post.id


def _existing_like(session: Session, user_id: int, post_id: int) -> PostLike | None:
    return session.get(PostLike, (user_id, post_id))


def _like_count(session: Session, post_id: int) -> int:
    return session.scalar(
        select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
    ) or 0


def toggle_like(engine: Engine, user_id: int, post_id: int) -> tuple[bool, int]:
    """Like the post, or unlike it if already liked.

    Returns ``(liked, like_count)`` after the toggle.  When a concurrent
    request by the same user inserts the like first, the insert here fails
    on the primary key and the post is reported as liked.
    """
    try:
        with get_session(engine) as session:
            if session.get(Post, post_id) is None:
                raise PostNotFoundError(post_id)

            existing = _existing_like(session, user_id, post_id)
            if existing is None:
                session.add(PostLike(user_id=user_id, post_id=post_id))
                liked = True
            else:
                session.delete(existing)
                liked = False
            session.flush()
            return liked, _like_count(session, post_id)
    except IntegrityError:
        logger.debug("Like by user %d on post %d already recorded", user_id, post_id)

    with get_session(engine) as session:
        if session.get(Post, post_id) is None:
            raise PostNotFoundError(post_id)
        return True, _like_count(session, post_id)


def add_reply(engine: Engine, user_id: int, post_id: int, content) -> int:
    """Attach a reply (≤ 1000 chars) to an existing post and return its id."""
    text = clean_text(content, REPLY_MAX_LENGTH)
    with get_session(engine) as session:
        if session.get(Post, post_id) is None:
            raise PostNotFoundError(post_id)
        reply = PostReply(post_id=post_id, user_id=user_id, content=text)
        session.add(reply)
        session.flush()
        return reply.id


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------
def create_review(
    engine: Engine, user_id: int, target_id, target_type, rating, comment
) -> int:
    """Store a review.  Ratings outside 1-5 are rejected, never clamped."""
    if target_id is None or rating is None or comment is None:
        raise ValueError("Missing fields")
    target = positive_id(target_id, field="targetId")
    stars = validate_rating(rating)
    text = clean_text(comment, REVIEW_MAX_LENGTH, field="comment")
    kind = coerce_choice(target_type, TargetType, TargetType.ANIME)

    with get_session(engine) as session:
        review = Review(
            user_id=user_id,
            target_id=target,
            target_type=kind.value,
            rating=stars,
            comment=text,
        )
        session.add(review)
        session.flush()
        logger.debug("Review %d stored for %s:%d", review.id, kind, target)
        return review.id
