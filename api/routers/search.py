"""
Catalog search across TMDb, AniList, IGDB and Spotify.
"""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Query

from api.deps import TmdbCache, provider_http_error, validation_http_error
from api.schemas import SearchResponse
from mml_backend.errors import MediaValidationError, ProviderError
from mml_backend.search import search_media

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=SearchResponse)
def search(
    cache: TmdbCache,
    query: str | None = Query(default=None),
    type: str | None = Query(default=None),
) -> dict:
    """Search one provider; `type` picks it (movie, tv, anime, game, track/song, album)."""
    try:
        items = search_media(type, query, cache=cache)
    except MediaValidationError as exc:
        raise validation_http_error(exc) from exc
    except ProviderError as exc:
        raise provider_http_error(exc) from exc
    return {"items": [asdict(item) for item in items]}
