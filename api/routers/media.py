"""
Single media item detail, addressed by provider id or by route id.
"""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Query

from api.deps import provider_http_error, validation_http_error
from api.schemas import MediaResponse
from mml_backend.errors import MediaValidationError, ProviderError
from mml_backend.media_detail import fetch_media_detail
from mml_backend.media_route import parse_media_route_id

router = APIRouter(prefix="/media", tags=["media"])


def _load_media(provider: str, media_id: str, type_: str | None) -> dict:
    try:
        media = fetch_media_detail(provider, media_id, type_)
    except MediaValidationError as exc:
        raise validation_http_error(exc) from exc
    except ProviderError as exc:
        raise provider_http_error(exc) from exc
    if media is None:
        raise HTTPException(status_code=404, detail="Media not found.")
    return {"media": asdict(media)}


@router.get("/route/{route_id}", response_model=MediaResponse)
def get_media_by_route_id(route_id: str) -> dict:
    """Resolve a route id such as `tmdb-tv-1399` or `spotify-album-...`."""
    parsed = parse_media_route_id(route_id)
    if parsed is None:
        raise HTTPException(status_code=404, detail="Media not found.")
    return _load_media(parsed.provider, parsed.source_id, parsed.type)


@router.get("/{provider}/{media_id}", response_model=MediaResponse)
def get_media(
    provider: str,
    media_id: str,
    type: str | None = Query(default=None),
) -> dict:
    """Fetch media detail from the provider (`type` defaults to movie)."""
    return _load_media(provider, media_id, type)
