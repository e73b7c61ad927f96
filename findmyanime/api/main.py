"""
findmyanime.api.main — FastAPI application entry point
=======================================================

Run with::

    uvicorn findmyanime.api.main:app --reload --port 3000

or ``python -m findmyanime``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.staticfiles import StaticFiles

load_dotenv()

from findmyanime.api.auth import router as auth_router  # noqa: E402
from findmyanime.api.deps import get_config, get_engine  # noqa: E402
from findmyanime.api.rate_limit import configure_rate_limiter  # noqa: E402
from findmyanime.api.routes.catalog import router as catalog_router  # noqa: E402
from findmyanime.api.routes.community import router as community_router  # noqa: E402
from findmyanime.api.routes.library import router as library_router  # noqa: E402
from findmyanime.api.routes.reviews import router as reviews_router  # noqa: E402
from findmyanime.api.routes.users import router as users_router  # noqa: E402
from findmyanime.catalog.client import CatalogClient, RateGovernor  # noqa: E402
from findmyanime.database.engine import init_db, run_db  # noqa: E402
from findmyanime.services.session_service import SessionSweeper  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, wire the limiter, catalog client and session sweeper."""
    cfg = get_config()
    engine = get_engine()
    await run_db(init_db, engine)

    configure_rate_limiter(
        engine=engine,
        max_requests=cfg.auth_rate_limit,
        window_seconds=cfg.auth_rate_window_seconds,
    )

    app.state.catalog = CatalogClient(
        cfg.catalog_base_url,
        governor=RateGovernor(cfg.catalog_interval),
        backoff=cfg.catalog_backoff,
        timeout=cfg.catalog_timeout,
    )

    sweeper = SessionSweeper(
        engine,
        interval=cfg.session_sweep_seconds,
        auth_window_seconds=cfg.auth_rate_window_seconds,
    )
    await sweeper.sweep_once()
    sweeper.start()

    logger.info("%s API started — engine ready (%s)", cfg.site_name, engine.url.database)
    yield

    await sweeper.stop()
    await app.state.catalog.aclose()
    logger.info("%s API shutting down", cfg.site_name)


app = FastAPI(
    title="FindMyAnime API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"detail": message})


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(library_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(community_router, prefix="/api")
app.include_router(reviews_router, prefix="/api")
app.include_router(catalog_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


# Static frontend (optional) — must be mounted after the API routes
_static_dir = get_config().static_dir
if _static_dir and Path(_static_dir).is_dir():
    app.mount("/", StaticFiles(directory=_static_dir, html=True), name="frontend")
