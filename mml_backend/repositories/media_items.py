from __future__ import annotations

import logging
from typing import Any, Mapping

import requests
from supabase import Client

from mml_backend.enrichment import ResolvedMetadata, build_missing_patch, resolve_media_metadata
from mml_backend.models.media import MediaPayload
from mml_backend.repositories import RepositoryError, first_row, raise_for_supabase_error

logger = logging.getLogger(__name__)

MEDIA_ROW_COLUMNS = "id,year,duration_minutes,genres,directors,writers,cast,metadata"


def find_media_row(db: Client, source: str, source_id: str) -> dict[str, Any] | None:
    response = (
        db.table("media_items")
        .select(MEDIA_ROW_COLUMNS)
        .eq("source", source)
        .eq("source_id", str(source_id))
        .limit(1)
        .execute()
    )
    raise_for_supabase_error(response, "finding media item")
    return first_row(response)


def build_media_insert(media: MediaPayload, resolved: ResolvedMetadata) -> dict[str, Any]:
    return {
        "source": media.provider,
        "source_id": media.provider_id,
        "type": media.type,
        "title": media.title,
        "poster_url": media.poster_url,
        "description": media.description,
        "year": resolved.year,
        "duration_minutes": resolved.duration_minutes,
        "genres": resolved.genres,
        "directors": resolved.directors,
        "writers": resolved.writers,
        "cast": resolved.cast,
        "metadata": resolved.metadata,
    }


def insert_media_row(db: Client, payload: Mapping[str, Any]) -> dict[str, Any]:
    response = db.table("media_items").insert(dict(payload)).execute()
    raise_for_supabase_error(response, "inserting media item")
    row = first_row(response)
    if row is None:
        raise RepositoryError("Supabase insert returned no data for media item.")
    return row


def update_media_row(db: Client, media_id: str, patch: Mapping[str, Any]) -> dict[str, Any] | None:
    response = db.table("media_items").update(dict(patch)).eq("id", str(media_id)).execute()
    raise_for_supabase_error(response, "updating media item")
    return first_row(response)


def ensure_media_row(
    db: Client,
    media: MediaPayload,
    *,
    include_credits: bool = True,
    session: requests.Session | None = None,
) -> dict[str, Any]:
    """
    Return the `media_items` row for `media`, creating it when needed.

    An existing row only has its null/empty columns filled in; nothing that is
    already stored is overwritten.
    """

    resolved = resolve_media_metadata(media, include_credits=include_credits, session=session)

    existing = find_media_row(db, media.provider, media.provider_id)
    if existing is not None:
        patch = build_missing_patch(existing, resolved)
        if patch:
            logger.info(f"Backfilling media item {existing.get('id')}: {sorted(patch)}")
            update_media_row(db, existing["id"], patch)
            existing = {**existing, **patch}
        return existing

    return insert_media_row(db, build_media_insert(media, resolved))
