"""
findmyanime.api.routes.catalog — Public, rate-governed metadata reads
======================================================================

Thin pass-through to the upstream metadata API.  Every call shares the
process-wide :class:`~findmyanime.catalog.client.CatalogClient`, so the
site as a whole never exceeds the upstream pacing.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from findmyanime.api.deps import get_catalog
from findmyanime.catalog.client import CatalogClient, UpstreamError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/catalog", tags=["catalog"])


async def _relay(coro):
    try:
        return await coro
    except UpstreamError as exc:
        logger.error("Catalog upstream failed: %s", exc)
        raise HTTPException(502, "Catalog service unavailable")


@router.get("/stats")
async def catalog_stats(catalog: CatalogClient = Depends(get_catalog)):
    """Upstream anime/manga totals for the hero section."""
    return await _relay(catalog.catalog_totals())


@router.get("/top/anime")
async def top_anime(
    filter: str | None = Query(None),
    limit: int = Query(24, ge=1, le=25),
    catalog: CatalogClient = Depends(get_catalog),
):
    return await _relay(catalog.top_anime(filter_by=filter, limit=limit))


@router.get("/top/manga")
async def top_manga(
    limit: int = Query(12, ge=1, le=25),
    catalog: CatalogClient = Depends(get_catalog),
):
    return await _relay(catalog.top_manga(limit=limit))


@router.get("/anime/{mal_id}")
async def anime_detail(mal_id: int, catalog: CatalogClient = Depends(get_catalog)):
    if mal_id <= 0:
        raise HTTPException(400, "Invalid anime id")
    return await _relay(catalog.anime(mal_id))


@router.get("/search")
async def search_anime(
    q: str = Query(""),
    limit: int = Query(8, ge=1, le=25),
    catalog: CatalogClient = Depends(get_catalog),
):
    query = q.strip()
    if len(query) < 2:
        raise HTTPException(400, "Search query must be at least 2 characters")
    return await _relay(catalog.search_anime(query, limit=limit))


@router.get("/genres")
async def anime_genres(catalog: CatalogClient = Depends(get_catalog)):
    return await _relay(catalog.anime_genres())


@router.get("/genres/{genre_id}")
async def anime_by_genre(
    genre_id: int,
    limit: int = Query(24, ge=1, le=25),
    catalog: CatalogClient = Depends(get_catalog),
):
    if genre_id <= 0:
        raise HTTPException(400, "Invalid genre id")
    return await _relay(catalog.anime_by_genre(genre_id, limit=limit))
