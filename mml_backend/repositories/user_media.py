from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Mapping

from supabase import Client

from mml_backend.models.media import EntryPatch
from mml_backend.repositories import RepositoryError, first_row, raise_for_supabase_error

DEFAULT_STATUS = "Planning"
ENTRY_COLUMNS = "status,user_rating,note,episode_progress,first_rated_at"

ENTRIES_SELECT = (
    "status,user_rating,note,episode_progress,created_at,updated_at,"
    "media_items(title,poster_url,description,type,source,source_id,year,duration_minutes,metadata,genres)"
)
RATINGS_SELECT = (
    "status,user_rating,note,updated_at,first_rated_at,"
    "media_items(title,poster_url,description,type,source,source_id,year,duration_minutes,"
    "genres,directors,writers,cast)"
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def coerce_rating(value: Any) -> float | None:
    """Ratings come back as numbers or numeric strings depending on the column type."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _finite_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


def episode_count_from_metadata(metadata: Any) -> int | None:
    if not isinstance(metadata, dict):
        return None
    return _finite_int(metadata.get("episodeCount"))


def _joined_media(row: Mapping[str, Any]) -> dict[str, Any] | None:
    media = row.get("media_items")
    if isinstance(media, list):
        media = media[0] if media else None
    return media if isinstance(media, dict) else None


def map_entry_summary(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "status": row.get("status"),
        "rating": coerce_rating(row.get("user_rating")),
        "note": row.get("note"),
        "episode_progress": _finite_int(row.get("episode_progress")),
    }


def get_entry(db: Client, user_id: str, media_id: str) -> dict[str, Any] | None:
    response = (
        db.table("user_media")
        .select(ENTRY_COLUMNS)
        .eq("user_identifier", user_id)
        .eq("media_id", str(media_id))
        .limit(1)
        .execute()
    )
    raise_for_supabase_error(response, "fetching entry")
    return first_row(response)


def upsert_entry(db: Client, user_id: str, media_id: str, patch: EntryPatch) -> dict[str, Any]:
    """
    Create or update the (user, media) entry.

    Only the fields present in `patch` are written. A new entry without a status
    starts as Planning, and `first_rated_at` is stamped the first time a rating
    is set.
    """

    existing = get_entry(db, user_id, media_id)

    status = patch.status if patch.has("status") and patch.status else None
    if status is None:
        status = (existing or {}).get("status") or DEFAULT_STATUS

    payload: dict[str, Any] = {
        "user_identifier": user_id,
        "media_id": str(media_id),
        "status": status,
    }
    if patch.has("rating"):
        payload["user_rating"] = patch.rating
        if patch.rating is not None and not (existing or {}).get("first_rated_at"):
            payload["first_rated_at"] = _now_iso()
    if patch.has("note"):
        payload["note"] = patch.note
    if patch.has("episode_progress"):
        payload["episode_progress"] = patch.episode_progress

    response = db.table("user_media").upsert(payload, on_conflict="user_identifier,media_id").execute()
    raise_for_supabase_error(response, "saving entry")
    row = first_row(response)
    if row is None:
        raise RepositoryError("Supabase upsert returned no data for entry.")
    return map_entry_summary(row)


def map_entry_row(row: Mapping[str, Any]) -> dict[str, Any] | None:
    media = _joined_media(row)
    if media is None:
        return None
    return {
        **map_entry_summary(row),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
        "media": {
            "title": media.get("title"),
            "poster_url": media.get("poster_url"),
            "description": media.get("description"),
            "type": media.get("type"),
            "provider": media.get("source"),
            "provider_id": media.get("source_id"),
            "year": media.get("year"),
            "duration_minutes": media.get("duration_minutes"),
            "episode_count": episode_count_from_metadata(media.get("metadata")),
            "genres": media.get("genres"),
        },
    }


def list_entries(db: Client, user_id: str) -> list[dict[str, Any]]:
    response = (
        db.table("user_media")
        .select(ENTRIES_SELECT)
        .eq("user_identifier", user_id)
        .order("created_at", desc=True)
        .execute()
    )
    raise_for_supabase_error(response, "listing entries")
    items = [map_entry_row(row) for row in response.data or []]
    return [item for item in items if item is not None]


def map_rated_row(row: Mapping[str, Any]) -> dict[str, Any] | None:
    media = _joined_media(row)
    rating = coerce_rating(row.get("user_rating"))
    if media is None or rating is None:
        return None
    return {
        "status": row.get("status"),
        "rating": rating,
        "note": row.get("note"),
        "updated_at": row.get("updated_at"),
        "first_rated_at": row.get("first_rated_at"),
        "media": {
            "title": media.get("title"),
            "poster_url": media.get("poster_url"),
            "description": media.get("description"),
            "type": media.get("type"),
            "provider": media.get("source"),
            "provider_id": media.get("source_id"),
            "year": media.get("year"),
            "duration_minutes": media.get("duration_minutes"),
            "genres": media.get("genres"),
            "directors": media.get("directors"),
            "writers": media.get("writers"),
            "cast": media.get("cast"),
        },
    }


def list_rated_entries(db: Client, user_id: str) -> list[dict[str, Any]]:
    response = (
        db.table("user_media")
        .select(RATINGS_SELECT)
        .eq("user_identifier", user_id)
        .not_.is_("user_rating", "null")
        .order("updated_at", desc=True)
        .execute()
    )
    raise_for_supabase_error(response, "listing rated entries")
    items = [map_rated_row(row) for row in response.data or []]
    return [item for item in items if item is not None]
