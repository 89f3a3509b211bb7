from __future__ import annotations

from typing import Any

import requests

from mml_backend.integrations.token_cache import TokenCache
from mml_backend.utils.env import require_env

IGDB_AUTH_URL = "https://id.twitch.tv/oauth2/token"
IGDB_API_BASE_URL = "https://api.igdb.com/v4"
IGDB_IMAGE_BASE_URL = "https://images.igdb.com/igdb/image/upload"

GAME_SEARCH_FIELDS = "name,summary,first_release_date,cover.image_id,genres.name,total_rating"
GAME_DETAIL_FIELDS = (
    "name,summary,first_release_date,cover.image_id,screenshots.image_id,artworks.image_id,"
    "genres.name,involved_companies.company.name,involved_companies.developer,"
    "involved_companies.publisher,total_rating,age_ratings.rating"
)


class IgdbClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _require_credentials() -> tuple[str, str]:
    try:
        return require_env("IGDB_CLIENT_ID"), require_env("IGDB_CLIENT_SECRET")
    except RuntimeError as exc:
        raise IgdbClientError(str(exc)) from exc


def _fetch_access_token(session: requests.Session | None = None) -> tuple[str, float]:
    client_id, client_secret = _require_credentials()
    session = session or requests.Session()
    try:
        resp = session.post(
            IGDB_AUTH_URL,
            params={
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "client_credentials",
            },
            timeout=20,
        )
    except requests.RequestException as exc:
        raise IgdbClientError(f"IGDB auth request failed: {exc}") from exc

    if resp.status_code != 200:
        raise IgdbClientError(
            f"IGDB auth failed ({resp.status_code}). {(resp.text or '')[:200]}".strip(),
            status_code=resp.status_code,
        )

    payload = resp.json()
    token = payload.get("access_token") if isinstance(payload, dict) else None
    expires_in = payload.get("expires_in") if isinstance(payload, dict) else None
    if not token or not expires_in:
        raise IgdbClientError("IGDB auth response missing access token.")
    return str(token), float(expires_in)


_token_cache = TokenCache(_fetch_access_token)


def igdb_fetch(
    endpoint: str,
    body: str,
    *,
    session: requests.Session | None = None,
    token_cache: TokenCache | None = None,
) -> list[dict[str, Any]]:
    """
    POST an Apicalypse query to `https://api.igdb.com/v4/{endpoint}`.
    """

    client_id, _ = _require_credentials()
    token = (token_cache or _token_cache).get()
    session = session or requests.Session()
    try:
        resp = session.post(
            f"{IGDB_API_BASE_URL}/{endpoint}",
            data=body.encode("utf-8"),
            headers={
                "Client-ID": client_id,
                "Authorization": f"Bearer {token}",
                "Content-Type": "text/plain",
                "Accept": "application/json",
            },
            timeout=20,
        )
    except requests.RequestException as exc:
        raise IgdbClientError(f"IGDB request failed: {exc}") from exc

    if resp.status_code != 200:
        raise IgdbClientError(
            f"IGDB request failed ({resp.status_code}). {(resp.text or '')[:200]}".strip(),
            status_code=resp.status_code,
        )

    payload = resp.json()
    if not isinstance(payload, list):
        raise IgdbClientError("IGDB returned unexpected JSON shape (not a list).")
    return [item for item in payload if isinstance(item, dict)]


def build_image_url(image_id: str | None, size: str = "t_cover_big") -> str | None:
    if not image_id:
        return None
    return f"{IGDB_IMAGE_BASE_URL}/{size}/{image_id}.jpg"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def search_games(query: str, *, limit: int = 20, session: requests.Session | None = None) -> list[dict[str, Any]]:
    body = f'search "{_escape(query)}"; fields {GAME_SEARCH_FIELDS}; limit {int(limit)};'
    return igdb_fetch("games", body, session=session)


def fetch_game(game_id: int, *, session: requests.Session | None = None) -> dict[str, Any] | None:
    body = f"fields {GAME_DETAIL_FIELDS}; where id = {int(game_id)}; limit 1;"
    rows = igdb_fetch("games", body, session=session)
    return rows[0] if rows else None


def fetch_popular_covers(*, offset: int = 0, limit: int = 24, session: requests.Session | None = None) -> list[str]:
    body = " ".join(
        [
            "fields cover.image_id;",
            "where cover.image_id != null & rating_count > 10;",
            "sort rating_count desc;",
            f"limit {int(limit)};",
            f"offset {int(offset)};",
        ]
    )
    covers: list[str] = []
    for row in igdb_fetch("games", body, session=session):
        url = build_image_url((row.get("cover") or {}).get("image_id"), "t_cover_big")
        if url:
            covers.append(url)
    return covers
