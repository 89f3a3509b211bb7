"""
Poster wall shown behind the landing and login pages.

Covers are pulled from every provider at once; a provider that fails is logged
and left out rather than failing the whole request.
"""

from __future__ import annotations

import logging
import random
from typing import Callable

from mml_backend.integrations import anilist, igdb, spotify
from mml_backend.integrations.tmdb import client as tmdb
from mml_backend.utils.concurrency import map_settled

logger = logging.getLogger(__name__)

POSTER_LIMIT = 20
ANILIST_MAX_PAGE = 6
IGDB_MAX_OFFSET = 120


def _tmdb_posters(kind: str) -> list[str]:
    posters = []
    for item in tmdb.fetch_trending(kind, window="week"):
        url = tmdb.build_image_url(item.get("poster_path"))
        if url:
            posters.append(url)
    return posters


def build_poster_sources(rng: random.Random) -> list[tuple[str, Callable[[], list[str]]]]:
    anilist_page = rng.randint(1, ANILIST_MAX_PAGE)
    igdb_offset = rng.randrange(IGDB_MAX_OFFSET)
    return [
        ("tmdb:movie", lambda: _tmdb_posters("movie")),
        ("tmdb:tv", lambda: _tmdb_posters("tv")),
        ("anilist", lambda: anilist.fetch_popular_covers(page=anilist_page)),
        ("igdb", lambda: igdb.fetch_popular_covers(offset=igdb_offset)),
        ("spotify", lambda: spotify.fetch_new_release_covers()),
    ]


def dedupe(urls: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for url in urls:
        if url in seen:
            continue
        seen.add(url)
        unique.append(url)
    return unique


def collect_background_posters(
    *,
    limit: int = POSTER_LIMIT,
    rng: random.Random | None = None,
    sources: list[tuple[str, Callable[[], list[str]]]] | None = None,
) -> list[str]:
    rng = rng or random.Random()
    sources = sources if sources is not None else build_poster_sources(rng)

    results = map_settled(lambda source: source[1](), sources, concurrency=len(sources) or 1)

    posters: list[str] = []
    for (name, _), result in zip(sources, results):
        if not result.ok:
            logger.warning(f"Background poster source {name} failed: {result.error}")
            continue
        posters.extend(url for url in result.value or [] if url)

    unique = dedupe(posters)
    rng.shuffle(unique)
    return unique[:limit]
