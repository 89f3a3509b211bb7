"""
Catalog search across providers.

Every provider result is reshaped into a `SearchResultItem`. TMDb results are
additionally enriched with genre names and runtimes from the TTL cache.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import requests

from mml_backend.errors import PROVIDER_CLIENT_ERRORS, MediaValidationError, provider_error
from mml_backend.integrations import anilist, igdb, spotify
from mml_backend.integrations.tmdb import client as tmdb
from mml_backend.integrations.tmdb.cache import TmdbMetadataCache, get_default_cache
from mml_backend.media_route import build_media_route_id
from mml_backend.models.media import SearchResultItem
from mml_backend.utils.concurrency import map_settled
from mml_backend.utils.text import (
    artist_names,
    first_image_url,
    round_half_up,
    strip_html,
    year_from_date,
    year_from_timestamp,
)

logger = logging.getLogger(__name__)

FALLBACK_TAG = "Search"
RUNTIME_LOOKUP_CONCURRENCY = 5

# Accepted `type` values; "song" is an alias of "track".
SEARCH_TYPES = ("movie", "tv", "anime", "game", "track", "song", "album")


def normalize_search_type(value: str | None) -> str:
    type_ = (value or "movie").strip().lower()
    if type_ not in SEARCH_TYPES:
        raise MediaValidationError(f"Unsupported type '{type_}'.")
    return "track" if type_ == "song" else type_


def _join_parts(*parts: str | None) -> str:
    return " • ".join(p for p in parts if p)


def _with_fallback(tags: list[str]) -> list[str]:
    return tags or [FALLBACK_TAG]


# --- TMDb ---


def build_rating_tags(entry: Mapping[str, Any]) -> list[str]:
    tags: list[str] = []
    vote_average = entry.get("vote_average")
    if vote_average:
        tags.append(f"{float(vote_average):.1f} avg")
    vote_count = entry.get("vote_count")
    if vote_count:
        tags.append(f"{int(vote_count):,} votes")
    popularity = entry.get("popularity")
    if popularity:
        tags.append(f"Pop {round_half_up(float(popularity))}")
    return tags


def map_tmdb_result(
    kind: str,
    entry: Mapping[str, Any],
    *,
    genre_map: Mapping[int, str] | None = None,
    runtime_minutes: int | None = None,
) -> SearchResultItem:
    tmdb_id = str(entry.get("id"))
    if kind == "tv":
        title = entry.get("name") or entry.get("original_name") or "Untitled"
        date_value = entry.get("first_air_date")
        label = "TV Series"
    else:
        title = entry.get("title") or entry.get("original_title") or "Untitled"
        date_value = entry.get("release_date")
        label = "Movie"

    year = year_from_date(date_value)
    language = entry.get("original_language")
    subtitle = _join_parts(str(year) if year else None, label, language.upper() if language else None)

    tags = build_rating_tags(entry)
    if genre_map:
        genre_names = [genre_map[g] for g in entry.get("genre_ids") or [] if g in genre_map]
        tags.extend(genre_names[:2])

    return SearchResultItem(
        id=build_media_route_id(provider="tmdb", provider_id=tmdb_id, type=kind),
        title=title,
        subtitle=subtitle,
        description=entry.get("overview") or None,
        cover_url=tmdb.build_image_url(entry.get("poster_path")),
        tags=_with_fallback(tags),
        type=kind,
        provider="tmdb",
        provider_id=tmdb_id,
        year=year,
        duration_seconds=runtime_minutes * 60 if runtime_minutes else None,
    )


def _search_tmdb(
    kind: str,
    query: str,
    *,
    session: requests.Session | None,
    cache: TmdbMetadataCache,
) -> list[SearchResultItem]:
    results = tmdb.search(kind, query, session=session)

    try:
        genre_map = cache.get_genre_map(kind, session=session)
    except PROVIDER_CLIENT_ERRORS as exc:
        logger.warning(f"TMDb {kind} genre map unavailable: {exc}")
        genre_map = {}

    runtimes = map_settled(
        lambda entry: cache.get_runtime(kind, entry.get("id"), session=session),
        results,
        concurrency=RUNTIME_LOOKUP_CONCURRENCY,
    )

    items: list[SearchResultItem] = []
    for entry, runtime in zip(results, runtimes):
        items.append(
            map_tmdb_result(
                kind,
                entry,
                genre_map=genre_map,
                runtime_minutes=runtime.value if runtime.ok else None,
            )
        )
    return items


# --- AniList ---


def _anilist_title(entry: Mapping[str, Any]) -> str:
    title = entry.get("title") or {}
    return title.get("english") or title.get("romaji") or title.get("native") or "Untitled"


def _anilist_format_label(value: str | None) -> str:
    if not value:
        return "Anime"
    if value.upper() == "MOVIE":
        return "Anime Film"
    return value.replace("_", " ").lower()


def map_anilist_result(entry: Mapping[str, Any]) -> SearchResultItem:
    anilist_id = str(entry.get("id"))
    year = entry.get("seasonYear") if isinstance(entry.get("seasonYear"), int) else None

    tags = [g for g in (entry.get("genres") or [])[:3] if g]
    if entry.get("episodes"):
        tags.append(f"{entry['episodes']} eps")
    if entry.get("duration"):
        tags.append(f"{entry['duration']}m")

    duration = entry.get("duration")
    return SearchResultItem(
        id=build_media_route_id(provider="anilist", provider_id=anilist_id, type="anime"),
        title=_anilist_title(entry),
        subtitle=_join_parts(str(year) if year else None, _anilist_format_label(entry.get("format"))),
        description=strip_html(entry.get("description")),
        cover_url=(entry.get("coverImage") or {}).get("large") or None,
        tags=_with_fallback(tags),
        type="anime",
        provider="anilist",
        provider_id=anilist_id,
        year=year,
        duration_seconds=duration * 60 if isinstance(duration, int) and duration > 0 else None,
    )


# --- IGDB ---


def map_igdb_result(entry: Mapping[str, Any]) -> SearchResultItem:
    game_id = str(entry.get("id"))
    year = year_from_timestamp(entry.get("first_release_date"))
    tags = [g.get("name") for g in (entry.get("genres") or [])[:3] if isinstance(g, dict) and g.get("name")]
    rating = entry.get("total_rating")
    if isinstance(rating, (int, float)) and rating > 0:
        tags.append(f"{rating:.0f} rating")

    return SearchResultItem(
        id=build_media_route_id(provider="igdb", provider_id=game_id, type="game"),
        title=entry.get("name") or "Untitled",
        subtitle=_join_parts(str(year) if year else None, "Game"),
        description=entry.get("summary") or None,
        cover_url=igdb.build_image_url((entry.get("cover") or {}).get("image_id"), "t_cover_big"),
        tags=_with_fallback(tags),
        type="game",
        provider="igdb",
        provider_id=game_id,
        year=year,
    )


# --- Spotify ---


def map_spotify_result(kind: str, entry: Mapping[str, Any]) -> SearchResultItem:
    spotify_id = str(entry.get("id"))
    artists = ", ".join(artist_names(entry)) or None

    if kind == "album":
        year = year_from_date(entry.get("release_date"))
        media_type = "album"
        subtitle = _join_parts(artists, "Album", str(year) if year else None)
        cover_url = first_image_url(entry.get("images"))
        duration_seconds = None
        tags = [f"{entry['total_tracks']} tracks"] if entry.get("total_tracks") else []
    else:
        album = entry.get("album") or {}
        year = year_from_date(album.get("release_date"))
        media_type = "song"
        subtitle = _join_parts(artists, album.get("name"))
        cover_url = first_image_url(album.get("images"))
        duration_ms = entry.get("duration_ms")
        duration_seconds = round_half_up(duration_ms / 1000) if isinstance(duration_ms, int) else None
        tags = ["Explicit"] if entry.get("explicit") else []

    return SearchResultItem(
        id=build_media_route_id(provider="spotify", provider_id=spotify_id, type=media_type),
        title=entry.get("name") or "Untitled",
        subtitle=subtitle,
        cover_url=cover_url,
        tags=_with_fallback(tags),
        type=media_type,
        provider="spotify",
        provider_id=spotify_id,
        year=year,
        duration_seconds=duration_seconds,
    )


def search_media(
    type_: str | None,
    query: str | None,
    *,
    session: requests.Session | None = None,
    cache: TmdbMetadataCache | None = None,
) -> list[SearchResultItem]:
    """
    Search one provider catalog.

    Raises `MediaValidationError` for a blank query or unknown type and
    `ProviderError` when the provider call fails.
    """

    query = (query or "").strip()
    if not query:
        raise MediaValidationError("Missing query parameter.")
    type_ = normalize_search_type(type_)

    if type_ in ("movie", "tv"):
        try:
            return _search_tmdb(type_, query, session=session, cache=cache or get_default_cache())
        except PROVIDER_CLIENT_ERRORS as exc:
            raise provider_error("tmdb", exc, label="TMDB") from exc

    if type_ == "anime":
        try:
            return [map_anilist_result(e) for e in anilist.search_anime(query, session=session)]
        except PROVIDER_CLIENT_ERRORS as exc:
            raise provider_error("anilist", exc, label="AniList") from exc

    if type_ == "game":
        try:
            return [map_igdb_result(e) for e in igdb.search_games(query, session=session)]
        except PROVIDER_CLIENT_ERRORS as exc:
            raise provider_error("igdb", exc, label="IGDB") from exc

    try:
        return [map_spotify_result(type_, e) for e in spotify.search(type_, query, session=session)]
    except PROVIDER_CLIENT_ERRORS as exc:
        raise provider_error("spotify", exc, label="Spotify") from exc
