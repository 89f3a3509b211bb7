from __future__ import annotations

from typing import Any, Mapping

import requests

ANILIST_API_URL = "https://graphql.anilist.co"

SEARCH_ANIME_QUERY = """
query ($search: String, $perPage: Int) {
  Page(page: 1, perPage: $perPage) {
    media(search: $search, type: ANIME, sort: POPULARITY_DESC, isAdult: false) {
      id
      title { romaji english native }
      description(asHtml: false)
      seasonYear
      format
      episodes
      duration
      isAdult
      coverImage { large }
      genres
    }
  }
}
"""

ANIME_DETAIL_QUERY = """
query ($id: Int) {
  Media(id: $id, type: ANIME) {
    id
    type
    isAdult
    title { romaji english native }
    description(asHtml: false)
    seasonYear
    startDate { year }
    duration
    episodes
    genres
    coverImage { large }
    bannerImage
    studios(isMain: true) { nodes { name } }
  }
}
"""

POPULAR_COVERS_QUERY = """
query ($page: Int, $perPage: Int) {
  Page(page: $page, perPage: $perPage) {
    media(type: ANIME, sort: POPULARITY_DESC, isAdult: false) {
      coverImage { extraLarge }
    }
  }
}
"""


class AniListClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _first_error_message(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    errors = payload.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict) and isinstance(first.get("message"), str):
            return first["message"]
        return "AniList request failed."
    return None


def graphql_request(
    query: str,
    variables: Mapping[str, Any],
    *,
    session: requests.Session | None = None,
    timeout_seconds: float = 20.0,
) -> dict[str, Any]:
    """
    POST a GraphQL document to AniList and return the `data` object.

    Raises `AniListClientError` on HTTP failures and on GraphQL `errors`.
    """

    session = session or requests.Session()
    headers = {
        "content-type": "application/json",
        "accept": "application/json",
    }
    try:
        resp = session.post(
            ANILIST_API_URL,
            json={"query": query, "variables": dict(variables)},
            headers=headers,
            timeout=timeout_seconds,
        )
    except requests.RequestException as exc:
        raise AniListClientError(f"AniList request failed: {exc}") from exc

    try:
        payload = resp.json()
    except ValueError:
        payload = None

    if resp.status_code != 200:
        raise AniListClientError(
            _first_error_message(payload) or "AniList request failed.",
            status_code=resp.status_code,
        )

    message = _first_error_message(payload)
    if message:
        raise AniListClientError(message, status_code=resp.status_code)

    data = payload.get("data") if isinstance(payload, dict) else None
    return data if isinstance(data, dict) else {}


def search_anime(
    query: str,
    *,
    per_page: int = 20,
    session: requests.Session | None = None,
) -> list[dict[str, Any]]:
    data = graphql_request(SEARCH_ANIME_QUERY, {"search": query, "perPage": int(per_page)}, session=session)
    media = (data.get("Page") or {}).get("media") or []
    return [m for m in media if isinstance(m, dict) and not m.get("isAdult")]


def fetch_anime(anilist_id: int, *, session: requests.Session | None = None) -> dict[str, Any] | None:
    """Returns the AniList media object, or None when missing or adult."""
    data = graphql_request(ANIME_DETAIL_QUERY, {"id": int(anilist_id)}, session=session)
    media = data.get("Media")
    if not isinstance(media, dict) or media.get("isAdult"):
        return None
    return media


def fetch_popular_covers(
    *,
    page: int = 1,
    per_page: int = 24,
    session: requests.Session | None = None,
) -> list[str]:
    data = graphql_request(POPULAR_COVERS_QUERY, {"page": int(page), "perPage": int(per_page)}, session=session)
    covers: list[str] = []
    for media in (data.get("Page") or {}).get("media") or []:
        if not isinstance(media, dict):
            continue
        url = (media.get("coverImage") or {}).get("extraLarge")
        if isinstance(url, str) and url:
            covers.append(url)
    return covers
