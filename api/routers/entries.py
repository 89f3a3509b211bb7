"""
A user's saved entries: status, rating, note and progress per media item.
"""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Query

from api.auth import OptionalUser, resolve_user_id
from api.deps import SupabaseAdminClient, repository_http_error
from api.schemas import (
    EntriesResponse,
    EntryResponse,
    PersistEntryIn,
    RatingsResponse,
    StatsResponse,
)
from mml_backend.models.media import EntryPatch
from mml_backend.repositories import RepositoryError
from mml_backend.repositories.media_items import ensure_media_row, find_media_row
from mml_backend.repositories.user_media import (
    get_entry,
    list_entries,
    list_rated_entries,
    map_entry_summary,
    upsert_entry,
)
from mml_backend.stats import compute_dashboard_stats

router = APIRouter(tags=["entries"])


@router.get("/entry", response_model=EntryResponse)
def get_saved_entry(
    db: SupabaseAdminClient,
    user: OptionalUser,
    user_id: str | None = Query(default=None, alias="userId"),
    provider: str | None = Query(default=None),
    source_id: str | None = Query(default=None, alias="sourceId"),
) -> dict:
    """The user's entry for one media item, or `{"entry": null}`."""
    if not provider or not source_id:
        raise HTTPException(status_code=400, detail="Missing userId, provider, or sourceId.")
    user_id = resolve_user_id(user, user_id)

    try:
        media_row = find_media_row(db, provider, source_id)
        if media_row is None:
            return {"entry": None}
        entry = get_entry(db, user_id, media_row["id"])
    except RepositoryError as exc:
        raise repository_http_error(exc, "fetching entry") from exc

    return {"entry": map_entry_summary(entry) if entry else None}


def _save_entry(db: SupabaseAdminClient, user: dict | None, payload: PersistEntryIn) -> dict:
    user_id = resolve_user_id(user, payload.user_id)
    patch = payload.entry.to_patch() if payload.entry else EntryPatch()
    try:
        media_row = ensure_media_row(db, payload.media.to_payload())
        entry = upsert_entry(db, user_id, media_row["id"], patch)
    except RepositoryError as exc:
        raise repository_http_error(exc, "saving entry") from exc
    return {"entry": entry}


@router.post("/entry", response_model=EntryResponse)
def create_entry(db: SupabaseAdminClient, user: OptionalUser, payload: PersistEntryIn) -> dict:
    """Persist the media item (backfilling metadata) and create or update the entry."""
    return _save_entry(db, user, payload)


@router.patch("/entry", response_model=EntryResponse)
def update_entry(db: SupabaseAdminClient, user: OptionalUser, payload: PersistEntryIn) -> dict:
    """Same as POST; only the entry fields that are sent are changed."""
    return _save_entry(db, user, payload)


@router.get("/entries", response_model=EntriesResponse)
def get_entries(
    db: SupabaseAdminClient,
    user: OptionalUser,
    user_id: str | None = Query(default=None, alias="userId"),
) -> dict:
    """All of the user's entries, newest first."""
    user_id = resolve_user_id(user, user_id)
    try:
        return {"items": list_entries(db, user_id)}
    except RepositoryError as exc:
        raise repository_http_error(exc, "listing entries") from exc


@router.get("/ratings", response_model=RatingsResponse)
def get_ratings(
    db: SupabaseAdminClient,
    user: OptionalUser,
    user_id: str | None = Query(default=None, alias="userId"),
) -> dict:
    """Rated entries, most recently updated first."""
    user_id = resolve_user_id(user, user_id)
    try:
        return {"items": list_rated_entries(db, user_id)}
    except RepositoryError as exc:
        raise repository_http_error(exc, "listing rated entries") from exc


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    db: SupabaseAdminClient,
    user: OptionalUser,
    user_id: str | None = Query(default=None, alias="userId"),
) -> dict:
    """Dashboard summary computed over all of the user's entries."""
    user_id = resolve_user_id(user, user_id)
    try:
        entries = list_entries(db, user_id)
    except RepositoryError as exc:
        raise repository_http_error(exc, "listing entries") from exc
    return asdict(compute_dashboard_stats(entries))
