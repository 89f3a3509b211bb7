from __future__ import annotations

from typing import Any, Mapping

import requests

from mml_backend.integrations.token_cache import TokenCache
from mml_backend.utils.env import require_env

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"
SPOTIFY_SEARCH_KINDS = ("track", "album")


class SpotifyClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _require_credentials() -> tuple[str, str]:
    try:
        return require_env("SPOTIFY_CLIENT_ID"), require_env("SPOTIFY_CLIENT_SECRET")
    except RuntimeError as exc:
        raise SpotifyClientError("SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET not configured.") from exc


def _json_or_none(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _fetch_access_token(session: requests.Session | None = None) -> tuple[str, float]:
    client_id, client_secret = _require_credentials()
    session = session or requests.Session()
    try:
        resp = session.post(
            SPOTIFY_TOKEN_URL,
            data={"grant_type": "client_credentials"},
            auth=(client_id, client_secret),
            headers={"Accept": "application/json"},
            timeout=20,
        )
    except requests.RequestException as exc:
        raise SpotifyClientError(f"Spotify token request failed: {exc}") from exc

    payload = _json_or_none(resp)
    if resp.status_code != 200:
        message = payload.get("error_description") if isinstance(payload, dict) else None
        raise SpotifyClientError(message or "Spotify token request failed.", status_code=resp.status_code)

    token = payload.get("access_token") if isinstance(payload, dict) else None
    expires_in = payload.get("expires_in") if isinstance(payload, dict) else None
    if not token or not isinstance(expires_in, (int, float)):
        raise SpotifyClientError("Spotify token response missing fields.")
    return str(token), float(expires_in)


_token_cache = TokenCache(_fetch_access_token)


def spotify_fetch_json(
    url: str,
    *,
    params: Mapping[str, Any] | None = None,
    session: requests.Session | None = None,
    token_cache: TokenCache | None = None,
) -> dict[str, Any]:
    token = (token_cache or _token_cache).get()
    session = session or requests.Session()
    try:
        resp = session.get(
            url,
            params=dict(params or {}),
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            timeout=20,
        )
    except requests.RequestException as exc:
        raise SpotifyClientError(f"Spotify request failed: {exc}") from exc

    payload = _json_or_none(resp)
    if resp.status_code != 200:
        error = payload.get("error") if isinstance(payload, dict) else None
        message = error.get("message") if isinstance(error, dict) else None
        raise SpotifyClientError(message or "Spotify request failed.", status_code=resp.status_code)

    if not isinstance(payload, dict):
        raise SpotifyClientError("Spotify returned unexpected JSON shape (not an object).")
    return payload


def search(
    kind: str,
    query: str,
    *,
    limit: int = 20,
    session: requests.Session | None = None,
) -> list[dict[str, Any]]:
    if kind not in SPOTIFY_SEARCH_KINDS:
        raise ValueError(f"Unsupported Spotify search kind: {kind!r}")
    payload = spotify_fetch_json(
        f"{SPOTIFY_API_BASE_URL}/search",
        params={"q": query, "type": kind, "limit": int(limit)},
        session=session,
    )
    items = (payload.get(f"{kind}s") or {}).get("items") or []
    return [item for item in items if isinstance(item, dict)]


def fetch_track(track_id: str, *, session: requests.Session | None = None) -> dict[str, Any]:
    return spotify_fetch_json(f"{SPOTIFY_API_BASE_URL}/tracks/{track_id}", session=session)


def fetch_album(album_id: str, *, session: requests.Session | None = None) -> dict[str, Any]:
    return spotify_fetch_json(f"{SPOTIFY_API_BASE_URL}/albums/{album_id}", session=session)


def fetch_new_release_covers(*, limit: int = 24, session: requests.Session | None = None) -> list[str]:
    payload = spotify_fetch_json(
        f"{SPOTIFY_API_BASE_URL}/browse/new-releases",
        params={"limit": int(limit)},
        session=session,
    )
    covers: list[str] = []
    for item in (payload.get("albums") or {}).get("items") or []:
        images = item.get("images") if isinstance(item, dict) else None
        if isinstance(images, list) and images and isinstance(images[0], dict):
            url = images[0].get("url")
            if isinstance(url, str) and url:
                covers.append(url)
    return covers
