"""
User-curated lists and their items.

Every list operation checks ownership first; a list owned by someone else is
reported as not found.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from api.auth import OptionalUser, resolve_user_id
from api.deps import SupabaseAdminClient, repository_http_error, validation_http_error
from api.schemas import (
    ListCreateIn,
    ListDetailResponse,
    ListItemIn,
    ListPatchIn,
    ListResponse,
    ListsResponse,
    OkResponse,
)
from mml_backend.repositories import RepositoryError
from mml_backend.repositories import lists as lists_repo
from mml_backend.repositories.media_items import ensure_media_row

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lists", tags=["lists"])


def _require_owned_list(db: SupabaseAdminClient, list_id: str, user_id: str) -> dict:
    try:
        row = lists_repo.get_owned_list(db, list_id, user_id)
    except RepositoryError as exc:
        raise repository_http_error(exc, "fetching list") from exc
    if row is None:
        raise HTTPException(status_code=404, detail="List not found.")
    return row


@router.get("", response_model=ListsResponse)
def get_lists(
    db: SupabaseAdminClient,
    user: OptionalUser,
    user_id: str | None = Query(default=None, alias="userId"),
) -> dict:
    """The user's lists, most recently updated first."""
    user_id = resolve_user_id(user, user_id)
    try:
        return {"lists": lists_repo.list_lists(db, user_id)}
    except RepositoryError as exc:
        raise repository_http_error(exc, "listing lists") from exc


@router.post("", response_model=ListResponse)
def create_list(db: SupabaseAdminClient, user: OptionalUser, payload: ListCreateIn) -> dict:
    user_id = resolve_user_id(user, payload.user_id)
    try:
        row = lists_repo.create_list(db, user_id, payload.title, payload.description)
    except ValueError as exc:
        raise validation_http_error(exc) from exc
    except RepositoryError as exc:
        raise repository_http_error(exc, "creating list") from exc
    logger.info(f"Created list {row.get('id')} for {user_id}")
    return {"list": row}


@router.get("/{list_id}", response_model=ListDetailResponse)
def get_list(
    db: SupabaseAdminClient,
    user: OptionalUser,
    list_id: str,
    user_id: str | None = Query(default=None, alias="userId"),
) -> dict:
    """List metadata plus its items, newest first."""
    user_id = resolve_user_id(user, user_id)
    row = _require_owned_list(db, list_id, user_id)
    try:
        items = lists_repo.list_list_items(db, list_id)
    except RepositoryError as exc:
        raise repository_http_error(exc, "listing list items") from exc
    return {"list": row, "items": items}


@router.patch("/{list_id}", response_model=ListResponse)
def update_list(db: SupabaseAdminClient, user: OptionalUser, list_id: str, payload: ListPatchIn) -> dict:
    user_id = resolve_user_id(user, payload.user_id)
    _require_owned_list(db, list_id, user_id)
    patch = payload.model_dump(include={"title", "description"} & payload.model_fields_set)
    try:
        row = lists_repo.update_list(db, list_id, user_id, patch)
    except ValueError as exc:
        raise validation_http_error(exc) from exc
    except RepositoryError as exc:
        raise repository_http_error(exc, "updating list") from exc
    if row is None:
        raise HTTPException(status_code=404, detail="List not found.")
    return {"list": row}


@router.delete("/{list_id}", response_model=OkResponse)
def delete_list(
    db: SupabaseAdminClient,
    user: OptionalUser,
    list_id: str,
    user_id: str | None = Query(default=None, alias="userId"),
) -> dict:
    user_id = resolve_user_id(user, user_id)
    _require_owned_list(db, list_id, user_id)
    try:
        lists_repo.delete_list(db, list_id, user_id)
    except RepositoryError as exc:
        raise repository_http_error(exc, "deleting list") from exc
    return {"ok": True}


@router.post("/{list_id}/items", response_model=OkResponse)
def add_list_item(db: SupabaseAdminClient, user: OptionalUser, list_id: str, payload: ListItemIn) -> dict:
    """Add a media item to the list, creating its `media_items` row if needed."""
    user_id = resolve_user_id(user, payload.user_id)
    _require_owned_list(db, list_id, user_id)
    try:
        media_row = ensure_media_row(db, payload.media.to_payload(), include_credits=False)
        lists_repo.add_list_item(db, list_id, media_row["id"])
    except RepositoryError as exc:
        raise repository_http_error(exc, "adding list item") from exc
    return {"ok": True}


@router.delete("/{list_id}/items", response_model=OkResponse)
def remove_list_item(
    db: SupabaseAdminClient,
    user: OptionalUser,
    list_id: str,
    user_id: str | None = Query(default=None, alias="userId"),
    media_id: str | None = Query(default=None, alias="mediaId"),
) -> dict:
    if not media_id:
        raise HTTPException(status_code=400, detail="Missing userId or mediaId.")
    user_id = resolve_user_id(user, user_id)
    _require_owned_list(db, list_id, user_id)
    try:
        lists_repo.remove_list_item(db, list_id, media_id)
    except RepositoryError as exc:
        raise repository_http_error(exc, "removing list item") from exc
    return {"ok": True}
