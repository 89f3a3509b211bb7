from __future__ import annotations

import os
import random
import time
from typing import Any, Mapping
from urllib.parse import quote

import requests

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"
TMDB_BACKDROP_BASE_URL = "https://image.tmdb.org/t/p/w1280"

TMDB_KINDS = ("movie", "tv")


class TmdbClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, body_snippet: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_snippet = body_snippet


def _require_api_key(api_key: str | None) -> str:
    resolved = (api_key or os.getenv("TMDB_API_KEY") or "").strip()
    if not resolved:
        raise TmdbClientError("TMDB_API_KEY is not configured.")
    return resolved


def resolve_api_key(api_key: str | None = None) -> str | None:
    """
    Best-effort API key resolution for callers that want to continue when the key is missing.
    """

    resolved = (api_key or os.getenv("TMDB_API_KEY") or "").strip()
    return resolved or None


def _require_kind(kind: str) -> str:
    if kind not in TMDB_KINDS:
        raise ValueError(f"Unsupported TMDb media kind: {kind!r}")
    return kind


def build_image_url(path: str | None, *, base: str = TMDB_IMAGE_BASE_URL) -> str | None:
    if not isinstance(path, str) or not path:
        return None
    return f"{base}{path}"


def _status_message(resp: requests.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("status_message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


def _request_json(
    session: requests.Session,
    url: str,
    *,
    params: Mapping[str, Any] | None = None,
    timeout_seconds: float = 20.0,
) -> dict[str, Any]:
    headers = {
        "accept": "application/json",
    }
    max_attempts = 3

    last_response: requests.Response | None = None
    for attempt in range(max_attempts):
        try:
            resp = session.get(url, params=params, headers=headers, timeout=timeout_seconds)
        except requests.RequestException as exc:
            if attempt < max_attempts - 1:
                delay = 1.0 * (2**attempt)
                jitter = random.uniform(0.0, delay * 0.25)
                time.sleep(delay + jitter)
                continue
            raise TmdbClientError(f"TMDb request failed: {exc}") from exc

        last_response = resp
        if resp.status_code == 200:
            break

        retryable = resp.status_code == 429 or 500 <= resp.status_code < 600
        if retryable and attempt < max_attempts - 1:
            delay = 1.0 * (2**attempt)
            retry_after = (resp.headers.get("Retry-After") or "").strip()
            if retry_after.isdigit():
                delay = max(delay, float(retry_after))
            jitter = random.uniform(0.0, delay * 0.25)
            time.sleep(delay + jitter)
            continue

        raise TmdbClientError(
            _status_message(resp) or f"TMDb request failed with HTTP {resp.status_code}.",
            status_code=resp.status_code,
            body_snippet=(resp.text or "")[:400],
        )

    if last_response is None:
        raise TmdbClientError("TMDb request failed (no response).")
    resp = last_response

    try:
        payload = resp.json()
    except ValueError as exc:
        raise TmdbClientError(
            "TMDb returned non-JSON response.",
            status_code=resp.status_code,
            body_snippet=(resp.text or "")[:400],
        ) from exc

    if not isinstance(payload, dict):
        raise TmdbClientError("TMDb returned unexpected JSON shape (not an object).")
    return payload


def search(
    kind: str,
    query: str,
    *,
    page: int = 1,
    language: str = "en-US",
    api_key: str | None = None,
    session: requests.Session | None = None,
) -> list[dict[str, Any]]:
    """
    Search TMDb movies or TV series. Returns the raw `results` list of the first page.
    """

    kind = _require_kind(kind)
    api_key = _require_api_key(api_key)
    session = session or requests.Session()
    url = f"{TMDB_API_BASE_URL}/search/{kind}"
    payload = _request_json(
        session,
        url,
        params={
            "api_key": api_key,
            "query": query,
            "include_adult": "false",
            "language": language,
            "page": int(page),
        },
    )
    results = payload.get("results")
    if not isinstance(results, list):
        return []
    return [r for r in results if isinstance(r, dict)]


def fetch_details(
    kind: str,
    tmdb_id: int | str,
    *,
    language: str = "en-US",
    append_to_response: list[str] | None = None,
    api_key: str | None = None,
    session: requests.Session | None = None,
) -> dict[str, Any]:
    """
    Fetch a movie or TV details payload (`/3/movie/{id}` or `/3/tv/{id}`).
    """

    kind = _require_kind(kind)
    api_key = _require_api_key(api_key)
    session = session or requests.Session()
    url = f"{TMDB_API_BASE_URL}/{kind}/{quote(str(tmdb_id), safe='')}"
    params: dict[str, Any] = {"api_key": api_key, "language": language}
    append_parts = sorted({p.strip() for p in (append_to_response or []) if isinstance(p, str) and p.strip()})
    if append_parts:
        params["append_to_response"] = ",".join(append_parts)
    return _request_json(session, url, params=params)


def fetch_trending(
    kind: str,
    *,
    window: str = "week",
    api_key: str | None = None,
    session: requests.Session | None = None,
) -> list[dict[str, Any]]:
    kind = _require_kind(kind)
    api_key = _require_api_key(api_key)
    session = session or requests.Session()
    url = f"{TMDB_API_BASE_URL}/trending/{kind}/{window}"
    payload = _request_json(session, url, params={"api_key": api_key})
    results = payload.get("results")
    if not isinstance(results, list):
        return []
    return [r for r in results if isinstance(r, dict)]


def fetch_genre_list(
    kind: str,
    *,
    language: str = "en-US",
    api_key: str | None = None,
    session: requests.Session | None = None,
) -> dict[int, str]:
    """
    Fetch the official genre list for movies or TV as `{genre_id: name}`.
    """

    kind = _require_kind(kind)
    api_key = _require_api_key(api_key)
    session = session or requests.Session()
    url = f"{TMDB_API_BASE_URL}/genre/{kind}/list"
    payload = _request_json(session, url, params={"api_key": api_key, "language": language})
    genres: dict[int, str] = {}
    for item in payload.get("genres") or []:
        if not isinstance(item, dict):
            continue
        genre_id = item.get("id")
        name = item.get("name")
        if isinstance(genre_id, int) and isinstance(name, str) and name:
            genres[genre_id] = name
    return genres


def extract_runtime_minutes(kind: str, payload: Mapping[str, Any]) -> int | None:
    if kind == "tv":
        run_times = payload.get("episode_run_time")
        if isinstance(run_times, list) and run_times and isinstance(run_times[0], int):
            return run_times[0]
        return None
    runtime = payload.get("runtime")
    return runtime if isinstance(runtime, int) and runtime > 0 else None
