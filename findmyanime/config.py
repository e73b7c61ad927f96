"""
findmyanime.config — YAML Configuration Loader
===============================================

Reads ``config.yaml`` for soft settings (site identity, session cookie,
upstream catalog pacing, auth limiter).  Secrets and deployment switches
(``DATABASE_URL``, ``SESSION_SECRET``, ``APP_ENV``) stay in the environment.

Usage::

    from findmyanime.config import load_config

    cfg = load_config()          # reads ./config.yaml when present
    print(cfg.site_name)         # "FindMyAnime"
    print(cfg.catalog_interval)  # 0.4
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AppConfig:
    """Immutable configuration loaded from ``config.yaml`` + environment."""

    # Identity
    site_name: str = "FindMyAnime"
    port: int = 3000

    # Deployment — production turns on Secure / SameSite=None cookies
    production: bool = False

    # Sessions
    session_cookie_name: str = "findmyanime.sid"
    session_ttl_days: int = 7
    session_sweep_seconds: int = 3600

    # Upstream metadata API (Jikan v4)
    catalog_base_url: str = "https://api.jikan.moe/v4"
    catalog_interval: float = 0.4   # seconds between outbound calls
    catalog_backoff: float = 1.5    # seconds to wait after a 429
    catalog_timeout: float = 10.0

    # Signup/login limiter
    auth_rate_limit: int = 50
    auth_rate_window_seconds: int = 15 * 60

    # Optional static frontend directory mounted at "/"
    static_dir: str | None = "public"

    @property
    def session_max_age(self) -> int:
        """Cookie ``Max-Age`` in seconds."""
        return self.session_ttl_days * 24 * 60 * 60


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """Read *path* (if it exists) and return an :class:`AppConfig`.

    Unknown keys are ignored; missing keys keep their defaults.  ``APP_ENV``
    and ``PORT`` from the environment override the file.
    """
    raw: dict = {}
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    else:
        logger.info("No %s found — using default configuration", config_path)

    defaults = AppConfig()
    production = bool(raw.get("production", defaults.production))
    app_env = os.getenv("APP_ENV", "").strip().lower()
    if app_env:
        production = app_env == "production"

    port = int(os.getenv("PORT") or raw.get("port", defaults.port))

    return AppConfig(
        site_name=str(raw.get("site_name", defaults.site_name)),
        port=port,
        production=production,
        session_cookie_name=str(
            raw.get("session_cookie_name", defaults.session_cookie_name)
        ),
        session_ttl_days=int(raw.get("session_ttl_days", defaults.session_ttl_days)),
        session_sweep_seconds=int(
            raw.get("session_sweep_seconds", defaults.session_sweep_seconds)
        ),
        catalog_base_url=str(
            raw.get("catalog_base_url", defaults.catalog_base_url)
        ).rstrip("/"),
        catalog_interval=float(raw.get("catalog_interval", defaults.catalog_interval)),
        catalog_backoff=float(raw.get("catalog_backoff", defaults.catalog_backoff)),
        catalog_timeout=float(raw.get("catalog_timeout", defaults.catalog_timeout)),
        auth_rate_limit=int(raw.get("auth_rate_limit", defaults.auth_rate_limit)),
        auth_rate_window_seconds=int(
            raw.get("auth_rate_window_seconds", defaults.auth_rate_window_seconds)
        ),
        static_dir=raw.get("static_dir", defaults.static_dir),
    )
