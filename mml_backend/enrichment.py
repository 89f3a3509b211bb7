"""
Backfill of partial media metadata before it is persisted to `media_items`.

Clients send whatever fields they already have (search results carry no credits,
for example). For TMDb movies and series the missing fields are fetched from the
details endpoint; everything else is stored as sent.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Mapping

import requests

from mml_backend.errors import PROVIDER_CLIENT_ERRORS
from mml_backend.integrations.tmdb import client as tmdb
from mml_backend.media_detail import CAST_LIMIT, extract_people_by_job
from mml_backend.models.media import MediaPayload
from mml_backend.utils.text import clean_names, names_from, year_from_date

logger = logging.getLogger(__name__)

WRITER_JOBS = ("Writer", "Screenplay", "Story", "Author")
LIST_FIELDS = ("genres", "directors", "writers", "cast")


@dataclass(frozen=True)
class ResolvedMetadata:
    year: int | None = None
    duration_minutes: int | None = None
    genres: list[str] | None = None
    directors: list[str] | None = None
    writers: list[str] | None = None
    cast: list[str] | None = None
    episode_count: int | None = None
    metadata: dict[str, Any] | None = None


def _finite_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def _non_empty(values: list[str] | None) -> list[str] | None:
    cleaned = clean_names(values)
    return cleaned or None


def _metadata_blob(media: MediaPayload, resolved: ResolvedMetadata, *, include_credits: bool) -> dict[str, Any]:
    blob: dict[str, Any] = {
        "provider": media.provider,
        "providerId": media.provider_id,
        "year": resolved.year,
        "durationMinutes": resolved.duration_minutes,
        "genres": resolved.genres or [],
    }
    if include_credits:
        blob["directors"] = resolved.directors or []
        blob["writers"] = resolved.writers or []
        blob["cast"] = resolved.cast or []
    if resolved.episode_count is not None:
        blob["episodeCount"] = resolved.episode_count
    return blob


def base_metadata(media: MediaPayload) -> ResolvedMetadata:
    return ResolvedMetadata(
        year=_finite_int(media.year),
        duration_minutes=_finite_int(media.duration_minutes),
        genres=_non_empty(media.genres),
        directors=_non_empty(media.directors),
        writers=_non_empty(media.writers),
        cast=_non_empty(media.cast),
        episode_count=_finite_int(media.episode_count),
    )


def needs_tmdb_fetch(base: ResolvedMetadata, *, include_credits: bool) -> bool:
    fields = [base.year, base.duration_minutes, base.genres]
    if include_credits:
        fields.extend([base.directors, base.writers, base.cast])
    return any(value is None for value in fields)


def merge_tmdb_details(
    base: ResolvedMetadata,
    kind: str,
    data: Mapping[str, Any],
    *,
    include_credits: bool,
) -> ResolvedMetadata:
    """Fill only the fields that `base` is missing from a TMDb details payload."""
    if kind == "tv":
        fetched_year = year_from_date(data.get("first_air_date"))
    else:
        fetched_year = year_from_date(data.get("release_date"))

    credits = data.get("credits") or {}
    crew = [m for m in credits.get("crew") or [] if isinstance(m, dict)]
    cast = [m for m in credits.get("cast") or [] if isinstance(m, dict)]

    episodes = data.get("number_of_episodes") if kind == "tv" else None
    merged = ResolvedMetadata(
        year=base.year if base.year is not None else fetched_year,
        duration_minutes=(
            base.duration_minutes
            if base.duration_minutes is not None
            else tmdb.extract_runtime_minutes(kind, data)
        ),
        genres=base.genres if base.genres is not None else _non_empty(names_from(data.get("genres"))),
        episode_count=base.episode_count if base.episode_count is not None else _finite_int(episodes),
        directors=base.directors,
        writers=base.writers,
        cast=base.cast,
    )
    if include_credits:
        merged = replace(
            merged,
            directors=base.directors or _non_empty(extract_people_by_job(crew, ["Director"])),
            writers=base.writers or _non_empty(extract_people_by_job(crew, WRITER_JOBS)),
            cast=base.cast or _non_empty([m.get("name") for m in cast[:CAST_LIMIT]]),
        )
    return merged


def _with_blob(media: MediaPayload, resolved: ResolvedMetadata, *, include_credits: bool) -> ResolvedMetadata:
    return replace(resolved, metadata=_metadata_blob(media, resolved, include_credits=include_credits))


def resolve_media_metadata(
    media: MediaPayload,
    *,
    include_credits: bool = True,
    api_key: str | None = None,
    session: requests.Session | None = None,
) -> ResolvedMetadata:
    """
    Resolve the metadata columns for a `media_items` row.

    Non-TMDb media and TMDb media without an API key are returned as sent, with
    `metadata=None` (non-TMDb media keep a small blob when an episode count is
    known). A failed TMDb lookup degrades to the payload-only result.
    """

    base = base_metadata(media)
    if media.provider != "tmdb" or media.type not in tmdb.TMDB_KINDS:
        if base.episode_count is not None:
            return replace(
                base,
                metadata={
                    "provider": media.provider,
                    "providerId": media.provider_id,
                    "episodeCount": base.episode_count,
                },
            )
        return base

    if not needs_tmdb_fetch(base, include_credits=include_credits):
        return _with_blob(media, base, include_credits=include_credits)

    resolved_key = tmdb.resolve_api_key(api_key)
    if not resolved_key:
        return base

    try:
        data = tmdb.fetch_details(
            media.type,
            media.provider_id,
            append_to_response=["credits"] if include_credits else None,
            api_key=resolved_key,
            session=session,
        )
    except PROVIDER_CLIENT_ERRORS as exc:
        logger.warning(f"TMDb metadata backfill failed for {media.type} {media.provider_id}: {exc}")
        return base

    merged = merge_tmdb_details(base, media.type, data, include_credits=include_credits)
    return _with_blob(media, merged, include_credits=include_credits)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, list) and len(value) == 0)


def build_missing_patch(row: Mapping[str, Any], resolved: ResolvedMetadata) -> dict[str, Any]:
    """
    Columns to update on an existing `media_items` row: only those that are
    null/empty on the row and known in `resolved`.
    """

    patch: dict[str, Any] = {}
    if "year" in row and row.get("year") is None and resolved.year is not None:
        patch["year"] = resolved.year
    if "duration_minutes" in row and row.get("duration_minutes") is None and resolved.duration_minutes is not None:
        patch["duration_minutes"] = resolved.duration_minutes
    for field_name in LIST_FIELDS:
        if field_name not in row:
            continue
        value = getattr(resolved, field_name)
        if _is_missing(row.get(field_name)) and value is not None:
            patch[field_name] = value
    if "metadata" in row and row.get("metadata") is None and resolved.metadata is not None:
        patch["metadata"] = resolved.metadata
    return patch
