"""
In-process TTL cache for TMDb genre maps and per-title runtimes.

Search results only carry `genre_ids` and no runtime, so both are looked up
here and memoized across requests.
"""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Callable

import requests

from mml_backend.integrations.tmdb.client import (
    TmdbClientError,
    extract_runtime_minutes,
    fetch_details,
    fetch_genre_list,
)
from mml_backend.utils.env import env_float

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 3600


def default_ttl_seconds() -> float:
    return max(1.0, env_float("TMDB_GENRE_CACHE_TTL_SECONDS", float(DEFAULT_TTL_SECONDS)))


class TmdbMetadataCache:
    def __init__(
        self,
        *,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = Lock()
        self._genres: dict[str, tuple[float, dict[int, str]]] = {}
        self._runtimes: dict[tuple[str, str], tuple[float, int | None]] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds if self._ttl_seconds is not None else default_ttl_seconds()

    def _fresh(self, stored_at: float) -> bool:
        return (self._clock() - stored_at) < self.ttl_seconds

    def get_genre_map(
        self,
        kind: str,
        *,
        api_key: str | None = None,
        session: requests.Session | None = None,
    ) -> dict[int, str]:
        with self._lock:
            hit = self._genres.get(kind)
        if hit and self._fresh(hit[0]):
            return hit[1]

        try:
            genres = fetch_genre_list(kind, api_key=api_key, session=session)
        except (TmdbClientError, requests.RequestException) as exc:
            if hit:
                logger.warning(f"TMDb {kind} genre refresh failed, serving stale map: {exc}")
                return hit[1]
            raise

        with self._lock:
            self._genres[kind] = (self._clock(), genres)
        return genres

    def get_runtime(
        self,
        kind: str,
        tmdb_id: int | str,
        *,
        api_key: str | None = None,
        session: requests.Session | None = None,
    ) -> int | None:
        key = (kind, str(tmdb_id))
        with self._lock:
            hit = self._runtimes.get(key)
        if hit and self._fresh(hit[0]):
            return hit[1]

        try:
            payload = fetch_details(kind, tmdb_id, api_key=api_key, session=session)
        except (TmdbClientError, requests.RequestException) as exc:
            if hit:
                logger.warning(f"TMDb {kind} runtime refresh for {tmdb_id} failed, serving stale value: {exc}")
                return hit[1]
            raise

        runtime = extract_runtime_minutes(kind, payload)
        with self._lock:
            self._runtimes[key] = (self._clock(), runtime)
        return runtime

    def clear(self) -> None:
        with self._lock:
            self._genres.clear()
            self._runtimes.clear()


_default_cache = TmdbMetadataCache()


def get_default_cache() -> TmdbMetadataCache:
    return _default_cache
