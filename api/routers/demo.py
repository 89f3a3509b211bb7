"""
Demo mode endpoints.

Each browser session sends its own id in `X-Demo-Session`; state never touches
the database.
"""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Header, HTTPException, Query

from api.deps import DemoStoreDep, validation_http_error
from api.schemas import (
    DemoEntryIn,
    DemoEntryResponse,
    DemoListPatchIn,
    DemoStateOut,
    OkResponse,
    RatingsResponse,
    StatsResponse,
)
from mml_backend.demo import InvalidDemoSession, build_rated_items
from mml_backend.demo.storage import validate_session_id
from mml_backend.stats import compute_dashboard_stats

router = APIRouter(prefix="/demo", tags=["demo"])


def _session(session_id: str | None) -> str:
    try:
        return validate_session_id(session_id)
    except InvalidDemoSession as exc:
        raise validation_http_error(exc) from exc


def _found(state: dict | None) -> dict:
    if state is None:
        raise HTTPException(status_code=404, detail="Demo state not found.")
    return state


def _media_ref(provider: str | None, provider_id: str | None, type_: str | None) -> dict:
    if not provider or not provider_id or not type_:
        raise HTTPException(status_code=400, detail="Missing provider, providerId, or type.")
    return {"provider": provider, "provider_id": provider_id, "type": type_}


@router.post("/state", response_model=DemoStateOut)
def ensure_demo_state(
    store: DemoStoreDep,
    x_demo_session: str | None = Header(default=None),
    seed: int | None = Query(default=None),
) -> dict:
    """Load the session's state, seeding it from live provider data on first use."""
    return store.ensure_state(_session(x_demo_session), seed=seed)


@router.get("/state", response_model=DemoStateOut)
def get_demo_state(store: DemoStoreDep, x_demo_session: str | None = Header(default=None)) -> dict:
    return _found(store.get_state(_session(x_demo_session)))


@router.delete("/state", response_model=OkResponse)
def reset_demo_state(store: DemoStoreDep, x_demo_session: str | None = Header(default=None)) -> dict:
    store.reset(_session(x_demo_session))
    return {"ok": True}


@router.get("/entry", response_model=DemoEntryResponse)
def get_demo_entry(
    store: DemoStoreDep,
    x_demo_session: str | None = Header(default=None),
    provider: str | None = Query(default=None),
    provider_id: str | None = Query(default=None, alias="providerId"),
    type: str | None = Query(default=None),
) -> dict:
    session_id = _session(x_demo_session)
    media = _media_ref(provider, provider_id, type)
    _found(store.get_state(session_id))
    return {"entry": store.get_entry_by_media(session_id, media)}


@router.patch("/entry", response_model=DemoStateOut)
def update_demo_entry(
    store: DemoStoreDep,
    payload: DemoEntryIn,
    x_demo_session: str | None = Header(default=None),
) -> dict:
    media = payload.media.model_dump()
    return _found(store.update_entry(_session(x_demo_session), media, payload.entry.to_patch()))


@router.get("/ratings", response_model=RatingsResponse)
def get_demo_ratings(store: DemoStoreDep, x_demo_session: str | None = Header(default=None)) -> dict:
    state = _found(store.get_state(_session(x_demo_session)))
    return {"items": build_rated_items(state.get("entries") or [])}


@router.get("/stats", response_model=StatsResponse)
def get_demo_stats(store: DemoStoreDep, x_demo_session: str | None = Header(default=None)) -> dict:
    state = _found(store.get_state(_session(x_demo_session)))
    return asdict(compute_dashboard_stats(state.get("entries") or []))


@router.patch("/lists/{list_id}", response_model=DemoStateOut)
def update_demo_list(
    store: DemoStoreDep,
    list_id: str,
    payload: DemoListPatchIn,
    x_demo_session: str | None = Header(default=None),
) -> dict:
    return _found(
        store.update_list_meta(
            _session(x_demo_session),
            list_id,
            title=payload.title,
            description=payload.description,
        )
    )


@router.delete("/lists/{list_id}", response_model=DemoStateOut)
def delete_demo_list(store: DemoStoreDep, list_id: str, x_demo_session: str | None = Header(default=None)) -> dict:
    return _found(store.remove_list(_session(x_demo_session), list_id))


@router.delete("/lists/{list_id}/items", response_model=DemoStateOut)
def remove_demo_list_item(
    store: DemoStoreDep,
    list_id: str,
    x_demo_session: str | None = Header(default=None),
    provider: str | None = Query(default=None),
    provider_id: str | None = Query(default=None, alias="providerId"),
    type: str | None = Query(default=None),
) -> dict:
    session_id = _session(x_demo_session)
    media = _media_ref(provider, provider_id, type)
    return _found(store.remove_list_item(session_id, list_id, media))
