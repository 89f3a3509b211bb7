from __future__ import annotations

from typing import Any, Mapping

from supabase import Client

from mml_backend.repositories import RepositoryError, first_row, raise_for_supabase_error

LIST_COLUMNS = "id,title,description,updated_at"
LIST_ITEMS_SELECT = "created_at,media_items(id,title,poster_url,description,type,source,source_id)"


def _clean_description(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def list_lists(db: Client, user_id: str) -> list[dict[str, Any]]:
    response = (
        db.table("lists")
        .select(LIST_COLUMNS)
        .eq("user_identifier", user_id)
        .order("updated_at", desc=True)
        .execute()
    )
    raise_for_supabase_error(response, "listing lists")
    return list(response.data or [])


def create_list(db: Client, user_id: str, title: str, description: str | None = None) -> dict[str, Any]:
    title = (title or "").strip()
    if not title:
        raise ValueError("List title is required.")
    payload = {
        "user_identifier": user_id,
        "title": title,
        "description": _clean_description(description),
    }
    response = db.table("lists").insert(payload).execute()
    raise_for_supabase_error(response, "creating list")
    row = first_row(response)
    if row is None:
        raise RepositoryError("Supabase insert returned no data for list.")
    return {key: row.get(key) for key in LIST_COLUMNS.split(",")}


def get_owned_list(db: Client, list_id: str, user_id: str) -> dict[str, Any] | None:
    """The list row when `user_id` owns it, else None (unknown and foreign lists look the same)."""
    response = (
        db.table("lists")
        .select(LIST_COLUMNS)
        .eq("id", str(list_id))
        .eq("user_identifier", user_id)
        .limit(1)
        .execute()
    )
    raise_for_supabase_error(response, "fetching list")
    return first_row(response)


def update_list(db: Client, list_id: str, user_id: str, patch: Mapping[str, Any]) -> dict[str, Any] | None:
    update: dict[str, Any] = {}
    if "title" in patch:
        title = (patch.get("title") or "").strip()
        if not title:
            raise ValueError("List title is required.")
        update["title"] = title
    if "description" in patch:
        update["description"] = _clean_description(patch.get("description"))
    if not update:
        return get_owned_list(db, list_id, user_id)

    response = (
        db.table("lists")
        .update(update)
        .eq("id", str(list_id))
        .eq("user_identifier", user_id)
        .execute()
    )
    raise_for_supabase_error(response, "updating list")
    row = first_row(response)
    if row is None:
        return None
    return {key: row.get(key) for key in LIST_COLUMNS.split(",")}


def delete_list(db: Client, list_id: str, user_id: str) -> bool:
    response = (
        db.table("lists")
        .delete()
        .eq("id", str(list_id))
        .eq("user_identifier", user_id)
        .execute()
    )
    raise_for_supabase_error(response, "deleting list")
    return bool(response.data)


def map_list_item_row(row: Mapping[str, Any]) -> dict[str, Any] | None:
    media = row.get("media_items")
    if isinstance(media, list):
        media = media[0] if media else None
    if not isinstance(media, dict):
        return None
    return {
        "created_at": row.get("created_at"),
        "media": {
            "id": media.get("id"),
            "title": media.get("title"),
            "poster_url": media.get("poster_url"),
            "description": media.get("description"),
            "type": media.get("type"),
            "provider": media.get("source"),
            "provider_id": media.get("source_id"),
        },
    }


def list_list_items(db: Client, list_id: str) -> list[dict[str, Any]]:
    response = (
        db.table("list_items")
        .select(LIST_ITEMS_SELECT)
        .eq("list_id", str(list_id))
        .order("created_at", desc=True)
        .execute()
    )
    raise_for_supabase_error(response, "listing list items")
    items = [map_list_item_row(row) for row in response.data or []]
    return [item for item in items if item is not None]


def add_list_item(db: Client, list_id: str, media_id: str) -> None:
    response = db.table("list_items").insert({"list_id": str(list_id), "media_id": str(media_id)}).execute()
    raise_for_supabase_error(response, "adding list item")


def remove_list_item(db: Client, list_id: str, media_id: str) -> None:
    response = (
        db.table("list_items")
        .delete()
        .eq("list_id", str(list_id))
        .eq("media_id", str(media_id))
        .execute()
    )
    raise_for_supabase_error(response, "removing list item")
