"""
findmyanime.database.models — SQLAlchemy 2.0 Data Models
=========================================================

Tables:
- users          — Site accounts (username + password hash)
- watchlists     — Anime a user wants to watch (one row per user/anime)
- manga_library  — Manga tracked by a user with reading progress
- posts          — Community feed posts
- post_likes     — Who liked which post (composite key)
- post_replies   — Threaded replies under a post
- reviews        — Star ratings + comments on anime or manga
- user_sessions  — Server-side session records behind the session cookie
- auth_attempts  — Sliding-window log for the signup/login limiter
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all FindMyAnime ORM models."""


# ---------------------------------------------------------------------------
# Enums — closed value sets shared by validation and persistence
# ---------------------------------------------------------------------------
class LibraryStatus(enum.StrEnum):
    """Reading state of a manga in a user's library."""
    READING = "reading"
    COMPLETED = "completed"
    PLAN_TO_READ = "plan_to_read"
    ON_HOLD = "on_hold"
    DROPPED = "dropped"


class PostCategory(enum.StrEnum):
    """Community post categories."""
    DISCUSSION = "discussion"
    REVIEW = "review"
    RECOMMENDATION = "recommendation"
    QUESTION = "question"
    MEME = "meme"


class TargetType(enum.StrEnum):
    """What a review is attached to."""
    ANIME = "anime"
    MANGA = "manga"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    password: Mapped[str] = mapped_column(Text, nullable=False)  # hash, never plaintext
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    watchlist: Mapped[list[WatchlistEntry]] = relationship(back_populates="user")
    manga_library: Mapped[list[MangaLibraryEntry]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


# ---------------------------------------------------------------------------
# Watchlists — one row per (user, anime)
# ---------------------------------------------------------------------------
class WatchlistEntry(Base):
    __tablename__ = "watchlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    anime_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="watchlist")

    __table_args__ = (
        UniqueConstraint("user_id", "anime_id", name="uq_watchlists_user_anime"),
    )

    def __repr__(self) -> str:
        return f"<WatchlistEntry user={self.user_id} anime={self.anime_id}>"


# ---------------------------------------------------------------------------
# Manga library — one row per (user, manga) with progress counters
# ---------------------------------------------------------------------------
class MangaLibraryEntry(Base):
    __tablename__ = "manga_library"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    manga_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(30), default=LibraryStatus.PLAN_TO_READ.value, nullable=False
    )
    chapters_read: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    volumes_read: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="manga_library")

    __table_args__ = (
        UniqueConstraint("user_id", "manga_id", name="uq_manga_library_user_manga"),
    )

    def __repr__(self) -> str:
        return (
            f"<MangaLibraryEntry user={self.user_id} manga={self.manga_id} "
            f"status={self.status!r}>"
        )


# ---------------------------------------------------------------------------
# Community posts, likes and replies
# ---------------------------------------------------------------------------
class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), default=PostCategory.DISCUSSION.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    author: Mapped[User] = relationship()
    likes: Mapped[list[PostLike]] = relationship(
        back_populates="post", cascade="all, delete-orphan"
    )
    replies: Mapped[list[PostReply]] = relationship(
        back_populates="post", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_posts_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post id={self.id} user={self.user_id} category={self.category!r}>"


class PostLike(Base):
    __tablename__ = "post_likes"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    post: Mapped[Post] = relationship(back_populates="likes")


class PostReply(Base):
    __tablename__ = "post_replies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    post: Mapped[Post] = relationship(back_populates="replies")
    author: Mapped[User] = relationship()

    __table_args__ = (
        Index("ix_post_replies_post_created", "post_id", "created_at"),
    )


# ---------------------------------------------------------------------------
# Reviews — rated comments on an anime or manga
# ---------------------------------------------------------------------------
class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    target_type: Mapped[str] = mapped_column(
        String(20), default=TargetType.ANIME.value, nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    author: Mapped[User] = relationship()

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        Index("ix_reviews_target", "target_type", "target_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Review id={self.id} {self.target_type}:{self.target_id} "
            f"rating={self.rating}>"
        )


# ---------------------------------------------------------------------------
# Sessions — opaque token referenced by the signed session cookie
# ---------------------------------------------------------------------------
class UserSession(Base):
    __tablename__ = "user_sessions"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped[User] = relationship()

    __table_args__ = (
        Index("ix_user_sessions_expires_at", "expires_at"),
    )


# ---------------------------------------------------------------------------
# Auth attempts — sliding-window state for the signup/login limiter
# ---------------------------------------------------------------------------
class AuthAttempt(Base):
    __tablename__ = "auth_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_key: Mapped[str] = mapped_column(String(100), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_auth_attempts_client_ts", "client_key", "timestamp"),
    )
