"""
FindMyAnime — Anime/Manga Discovery & Community Backend
========================================================
Accounts, watchlists, manga-library tracking, reviews and a community
post/like/reply feed over a relational store, plus a rate-governed client
for the public anime/manga metadata API.

Package layout::

    findmyanime/
    ├── config.py          # YAML + env → typed Python config
    ├── validation.py      # Trim / cap / whitelist / clamp helpers
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # ORM models + closed enums
    ├── catalog/
    │   └── client.py      # RateGovernor + CatalogClient (Jikan v4)
    ├── services/
    │   ├── auth_service.py       # Signup / credential checks
    │   ├── session_service.py    # Server-side sessions + expiry sweep
    │   ├── library_service.py    # Watchlist + manga library writes
    │   └── community_service.py  # Posts, likes, replies, reviews
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine, config, session-cookie guard
        ├── auth.py        # /signup /login /logout /me
        ├── rate_limit.py  # Signup/login attempt limiter
        └── routes/        # Library, users, community, reviews, catalog
"""

__version__ = "0.1.0"
