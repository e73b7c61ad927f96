"""
tests/test_community.py — Posts, Likes, Replies & Reviews
==========================================================
"""

from __future__ import annotations

import pytest
from conftest import signup
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from findmyanime.database.models import Post, PostLike, PostReply, Review
from findmyanime.services import auth_service, community_service
from findmyanime.services.community_service import PostNotFoundError


@pytest.fixture
def user_id(db_engine) -> int:
    return auth_service.create_user(db_engine, "motoko", "pw-section-9").id


# ===========================================================================
# Posts
# ===========================================================================
class TestPosts:
    def test_content_is_trimmed_and_capped(self, db_engine, user_id):
        post_id = community_service.create_post(db_engine, user_id, "  " + "a" * 2500 + "  ")
        with Session(db_engine) as s:
            post = s.get(Post, post_id)
        assert len(post.content) == 2000
        assert post.category == "discussion"

    def test_unknown_category_falls_back_to_discussion(self, db_engine, user_id):
        post_id = community_service.create_post(db_engine, user_id, "hi", "flamewar")
        with Session(db_engine) as s:
            assert s.get(Post, post_id).category == "discussion"

    def test_blank_content_rejected(self, logged_in):
        resp = logged_in.post("/api/posts", json={"content": "   "})
        assert resp.status_code == 400

    def test_create_and_list(self, logged_in):
        resp = logged_in.post("/api/posts", json={"content": " first! ", "category": "meme"})
        assert resp.status_code == 200
        post_id = resp.json()["id"]
        logged_in.post("/api/posts", json={"content": "second", "category": "question"})

        posts = logged_in.get("/api/posts").json()
        assert [p["content"] for p in posts] == ["second", "first!"]
        assert posts[1]["id"] == post_id
        assert posts[1]["category"] == "meme"
        assert posts[1]["username"] == "tester"
        assert posts[1]["like_count"] == 0
        assert posts[1]["reply_count"] == 0

        oldest = logged_in.get("/api/posts", params={"sort": "oldest"}).json()
        assert [p["content"] for p in oldest] == ["first!", "second"]

        memes = logged_in.get("/api/posts", params={"category": "meme"}).json()
        assert [p["id"] for p in memes] == [post_id]

    def test_list_is_public(self, client):
        assert client.get("/api/posts").status_code == 200

    def test_huge_page_returns_empty_list(self, logged_in):
        logged_in.post("/api/posts", json={"content": "only post"})
        resp = logged_in.get("/api/posts", params={"page": 10**20})
        assert resp.status_code == 200
        assert resp.json() == []

    def test_list_limit_clamped_to_100(self, logged_in, db_engine):
        user_id = logged_in.get("/api/me").json()["user"]["id"]
        with Session(db_engine) as s:
            s.add_all(Post(user_id=user_id, content=f"post {i}") for i in range(120))
            s.commit()

        resp = logged_in.get("/api/posts", params={"limit": 1000})
        assert resp.status_code == 200
        assert len(resp.json()) == 100


# ===========================================================================
# Likes
# ===========================================================================
class TestLikes:
    def test_double_like_returns_to_unliked(self, db_engine, user_id):
        post_id = community_service.create_post(db_engine, user_id, "like me")

        assert community_service.toggle_like(db_engine, user_id, post_id) == (True, 1)
        assert community_service.toggle_like(db_engine, user_id, post_id) == (False, 0)

    def test_like_missing_post(self, db_engine, user_id):
        with pytest.raises(PostNotFoundError):
            community_service.toggle_like(db_engine, user_id, 12345)

    def test_like_route_and_liked_flag(self, client):
        signup(client, "batou")
        post_id = client.post("/api/posts", json={"content": "cyberbrain"}).json()["id"]

        assert client.post(f"/api/posts/{post_id}/like").json() == {"liked": True, "likes": 1}
        posts = client.get("/api/posts").json()
        assert posts[0]["liked"] is True
        assert posts[0]["like_count"] == 1

        client.post("/api/logout")
        signup(client, "togusa")
        assert client.post(f"/api/posts/{post_id}/like").json() == {"liked": True, "likes": 2}
        assert client.post(f"/api/posts/{post_id}/like").json() == {"liked": False, "likes": 1}

    def test_like_unknown_post_is_404(self, logged_in):
        assert logged_in.post("/api/posts/999/like").status_code == 404

    @pytest.mark.parametrize("post_id", [0, 2**31, 10**20])
    def test_like_id_outside_column_range_is_400(self, logged_in, post_id):
        assert logged_in.post(f"/api/posts/{post_id}/like").status_code == 400

    def test_lost_insert_race_reports_liked(self, db_engine, user_id, monkeypatch):
        post_id = community_service.create_post(db_engine, user_id, "race")
        community_service.toggle_like(db_engine, user_id, post_id)

        # Simulate a concurrent request that inserted the like after our lookup.
        monkeypatch.setattr(community_service, "_existing_like", lambda *args: None)
        assert community_service.toggle_like(db_engine, user_id, post_id) == (True, 1)

        with Session(db_engine) as s:
            assert s.scalar(select(func.count()).select_from(PostLike)) == 1


# ===========================================================================
# Replies
# ===========================================================================
class TestReplies:
    def test_replies_listed_oldest_first(self, logged_in):
        post_id = logged_in.post("/api/posts", json={"content": "thread"}).json()["id"]
        for text in ("one", "two", "three"):
            resp = logged_in.post(f"/api/posts/{post_id}/reply", json={"content": text})
            assert resp.status_code == 200

        replies = logged_in.get(f"/api/posts/{post_id}/replies").json()
        assert [r["content"] for r in replies] == ["one", "two", "three"]
        assert replies[0]["username"] == "tester"

        posts = logged_in.get("/api/posts").json()
        assert posts[0]["reply_count"] == 3

    def test_reply_is_capped_at_1000(self, db_engine, user_id):
        post_id = community_service.create_post(db_engine, user_id, "thread")
        reply_id = community_service.add_reply(db_engine, user_id, post_id, "r" * 1500)
        with Session(db_engine) as s:
            assert len(s.get(PostReply, reply_id).content) == 1000

    def test_reply_to_missing_post(self, logged_in):
        assert logged_in.post("/api/posts/77/reply", json={"content": "hello"}).status_code == 404
        assert logged_in.get("/api/posts/77/replies").status_code == 404

    def test_reply_route_rejects_id_outside_column_range(self, logged_in):
        resp = logged_in.post(f"/api/posts/{10**20}/reply", json={"content": "hi"})
        assert resp.status_code == 400
        assert logged_in.get(f"/api/posts/{10**20}/replies").status_code == 400


# ===========================================================================
# Reviews
# ===========================================================================
class TestReviews:
    @pytest.mark.parametrize("rating", [0, 6, -1, 2.5, "five", True])
    def test_out_of_range_rating_rejected(self, logged_in, rating):
        resp = logged_in.post(
            "/api/reviews",
            json={"targetId": 1, "targetType": "anime", "rating": rating, "comment": "meh"},
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize("rating", [1, 2, 3, 4, 5])
    def test_valid_rating_stored_unchanged(self, db_engine, user_id, rating):
        review_id = community_service.create_review(
            db_engine, user_id, 21, "manga", rating, "  solid  "
        )
        with Session(db_engine) as s:
            review = s.get(Review, review_id)
        assert review.rating == rating
        assert review.comment == "solid"
        assert review.target_type == "manga"

    def test_missing_fields_rejected(self, logged_in):
        resp = logged_in.post("/api/reviews", json={"targetId": 1, "rating": 4})
        assert resp.status_code == 400

    def test_unknown_target_type_becomes_anime(self, db_engine, user_id):
        review_id = community_service.create_review(db_engine, user_id, 9, "novel", 4, "ok")
        with Session(db_engine) as s:
            assert s.get(Review, review_id).target_type == "anime"

    def test_list_filters_by_target_type(self, logged_in):
        logged_in.post(
            "/api/reviews",
            json={"targetId": 5, "targetType": "anime", "rating": 5, "comment": "great"},
        )
        logged_in.post(
            "/api/reviews",
            json={"targetId": 5, "targetType": "manga", "rating": 2, "comment": "weak"},
        )

        anime = logged_in.get("/api/reviews/5").json()
        assert [r["comment"] for r in anime] == ["great"]
        assert anime[0]["username"] == "tester"

        manga = logged_in.get("/api/reviews/5", params={"type": "manga"}).json()
        assert [r["rating"] for r in manga] == [2]

    def test_target_id_outside_column_range_is_400(self, logged_in):
        resp = logged_in.post(
            "/api/reviews",
            json={"targetId": 10**20, "rating": 4, "comment": "huge"},
        )
        assert resp.status_code == 400
        assert logged_in.get(f"/api/reviews/{10**20}").status_code == 400
