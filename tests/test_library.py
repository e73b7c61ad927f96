"""
tests/test_library.py — Watchlist & Manga Library Tests
========================================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from findmyanime.database.models import LibraryStatus, MangaLibraryEntry, WatchlistEntry
from findmyanime.services import auth_service, library_service


@pytest.fixture
def user_id(db_engine) -> int:
    return auth_service.create_user(db_engine, "shinji", "pw-eva-01").id


# ===========================================================================
# Service layer
# ===========================================================================
class TestWatchlistService:
    def test_id_beyond_column_range_rejected(self, db_engine, user_id):
        with pytest.raises(ValueError):
            library_service.add_to_watchlist(db_engine, user_id, 10**20)

    def test_adding_twice_stores_one_entry(self, db_engine, user_id):
        assert library_service.add_to_watchlist(db_engine, user_id, 30) is True
        assert library_service.add_to_watchlist(db_engine, user_id, 30) is False

        with Session(db_engine) as s:
            count = s.scalar(
                select(func.count()).select_from(WatchlistEntry).where(
                    WatchlistEntry.user_id == user_id, WatchlistEntry.anime_id == 30
                )
            )
        assert count == 1

    @pytest.mark.parametrize("bad_id", [0, -3, "abc", None, True, 1.5, float("inf")])
    def test_invalid_anime_id(self, db_engine, user_id, bad_id):
        with pytest.raises(ValueError):
            library_service.add_to_watchlist(db_engine, user_id, bad_id)

    def test_remove(self, db_engine, user_id):
        library_service.add_to_watchlist(db_engine, user_id, 5114)
        assert library_service.remove_from_watchlist(db_engine, user_id, 5114) is True
        assert library_service.remove_from_watchlist(db_engine, user_id, 5114) is False


class TestMangaLibraryService:
    def test_invalid_status_defaults_to_plan_to_read(self, db_engine, user_id):
        status = library_service.add_to_library(db_engine, user_id, 2, "binge")
        assert status is LibraryStatus.PLAN_TO_READ

    def test_duplicate_add_updates_status(self, db_engine, user_id):
        library_service.add_to_library(db_engine, user_id, 2, "reading")
        library_service.add_to_library(db_engine, user_id, 2, "completed")

        with Session(db_engine) as s:
            rows = s.scalars(
                select(MangaLibraryEntry).where(MangaLibraryEntry.user_id == user_id)
            ).all()
        assert len(rows) == 1
        assert rows[0].status == "completed"

    def test_update_leaves_omitted_fields_unchanged(self, db_engine, user_id):
        library_service.add_to_library(db_engine, user_id, 13, "reading")
        assert library_service.update_library_entry(
            db_engine, user_id, 13, chapters_read=120, volumes_read=-4
        ) is True

        with Session(db_engine) as s:
            entry = s.scalars(select(MangaLibraryEntry)).one()
        assert entry.status == "reading"
        assert entry.chapters_read == 120
        assert entry.volumes_read == 0

    def test_update_missing_entry(self, db_engine, user_id):
        assert library_service.update_library_entry(db_engine, user_id, 999, status="dropped") is False


# ===========================================================================
# HTTP routes
# ===========================================================================
class TestWatchlistRoutes:
    def test_add_list_remove(self, logged_in):
        for anime_id in (1, 20, 1):
            resp = logged_in.post("/api/watchlist/add", json={"animeId": anime_id})
            assert resp.status_code == 200

        assert sorted(logged_in.get("/api/watchlist").json()) == [1, 20]

        resp = logged_in.post("/api/watchlist/remove", json={"animeId": 20})
        assert resp.json() == {"success": True, "removed": True}
        assert logged_in.get("/api/watchlist").json() == [1]

    def test_invalid_id_is_bad_request(self, logged_in):
        resp = logged_in.post("/api/watchlist/add", json={"animeId": -1})
        assert resp.status_code == 400

    @pytest.mark.parametrize("anime_id", [10**20, 2**31, True, "twelve", 3.5])
    def test_out_of_range_or_mistyped_id_is_bad_request(self, logged_in, anime_id):
        resp = logged_in.post("/api/watchlist/add", json={"animeId": anime_id})
        assert resp.status_code == 400
        assert logged_in.get("/api/watchlist").json() == []

    def test_huge_page_returns_empty_list(self, logged_in):
        logged_in.post("/api/watchlist/add", json={"animeId": 1})
        resp = logged_in.get("/api/watchlist", params={"page": 10**20})
        assert resp.status_code == 200
        assert resp.json() == []

    def test_limit_is_clamped(self, logged_in, db_engine):
        user_id = logged_in.get("/api/me").json()["user"]["id"]
        with Session(db_engine) as s:
            s.add_all(WatchlistEntry(user_id=user_id, anime_id=i) for i in range(1, 131))
            s.commit()

        resp = logged_in.get("/api/watchlist", params={"limit": 1000})
        assert resp.status_code == 200
        assert len(resp.json()) == 100

        resp = logged_in.get("/api/watchlist", params={"limit": 100, "page": 2})
        assert len(resp.json()) == 30

        resp = logged_in.get("/api/watchlist", params={"limit": 0, "page": -5})
        assert len(resp.json()) == 1

    def test_watchlists_are_per_user(self, client):
        from conftest import signup

        signup(client, "asuka")
        client.post("/api/watchlist/add", json={"animeId": 30})
        client.post("/api/logout")

        signup(client, "rei")
        assert client.get("/api/watchlist").json() == []


class TestMangaLibraryRoutes:
    def test_add_update_remove(self, logged_in):
        resp = logged_in.post("/api/manga-library/add", json={"mangaId": 2, "status": "bogus"})
        assert resp.json() == {"success": True, "status": "plan_to_read"}

        resp = logged_in.post(
            "/api/manga-library/update",
            json={"mangaId": 2, "status": "reading", "chaptersRead": 42},
        )
        assert resp.json() == {"success": True, "updated": True}

        library = logged_in.get("/api/manga-library").json()
        assert library == [
            {"manga_id": 2, "status": "reading", "chapters_read": 42, "volumes_read": 0}
        ]

        resp = logged_in.post("/api/manga-library/remove", json={"mangaId": 2})
        assert resp.json()["removed"] is True
        assert logged_in.get("/api/manga-library").json() == []

    def test_missing_manga_id_is_bad_request(self, logged_in):
        resp = logged_in.post("/api/manga-library/add", json={"status": "reading"})
        assert resp.status_code == 400

    def test_counter_beyond_column_range_is_bad_request(self, logged_in):
        logged_in.post("/api/manga-library/add", json={"mangaId": 8})
        resp = logged_in.post(
            "/api/manga-library/update",
            json={"mangaId": 8, "chaptersRead": 10**20},
        )
        assert resp.status_code == 400
        assert logged_in.get("/api/manga-library").json()[0]["chapters_read"] == 0
