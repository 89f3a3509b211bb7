"""
Provider detail lookups normalized into `Media`.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import requests

from mml_backend.errors import PROVIDER_CLIENT_ERRORS, MediaValidationError, provider_error
from mml_backend.integrations import anilist, igdb, spotify
from mml_backend.integrations.tmdb import client as tmdb
from mml_backend.media_route import build_media_route_id
from mml_backend.models.media import CastMember, Media
from mml_backend.utils.text import (
    artist_names,
    clean_names,
    first_image_url,
    names_from,
    round_half_up,
    strip_html,
    year_from_date,
    year_from_timestamp,
)

TMDB_DETAIL_APPENDS = ["credits", "release_dates", "content_ratings"]
WRITER_JOBS = ("Screenplay", "Writer", "Story")
CAST_LIMIT = 10


def extract_people_by_job(crew: Iterable[Mapping[str, Any]], jobs: Iterable[str]) -> list[str]:
    wanted = {job.lower() for job in jobs}
    names: list[str] = []
    for member in crew:
        job = member.get("job")
        if isinstance(job, str) and job.lower() in wanted and member.get("name"):
            names.append(member["name"])
    return names


def _preferred_country(entries: list[Mapping[str, Any]]) -> Mapping[str, Any] | None:
    if not entries:
        return None
    for entry in entries:
        if entry.get("iso_3166_1") == "US":
            return entry
    return entries[0]


def extract_movie_certification(release_dates: Mapping[str, Any] | None) -> str | None:
    entries = [e for e in (release_dates or {}).get("results") or [] if isinstance(e, dict)]
    preferred = _preferred_country(entries)
    if preferred is None:
        return None
    for release in preferred.get("release_dates") or []:
        if isinstance(release, dict) and release.get("certification"):
            return release["certification"]
    return None


def extract_tv_certification(content_ratings: Mapping[str, Any] | None) -> str | None:
    entries = [e for e in (content_ratings or {}).get("results") or [] if isinstance(e, dict)]
    preferred = _preferred_country(entries)
    if preferred is None:
        return None
    return preferred.get("rating") or None


def _tmdb_cast(cast: list[Mapping[str, Any]]) -> tuple[list[str], list[CastMember]]:
    top = [m for m in cast[:CAST_LIMIT] if m.get("name")]
    names = [m["name"] for m in top]
    members = [CastMember(name=m["name"], role=m.get("character") or None) for m in top]
    return names, members


def map_tmdb_movie(movie: Mapping[str, Any], *, route_id: str | None = None) -> Media:
    credits = movie.get("credits") or {}
    crew = [m for m in credits.get("crew") or [] if isinstance(m, dict)]
    cast_names, cast_members = _tmdb_cast([m for m in credits.get("cast") or [] if isinstance(m, dict)])
    tmdb_id = str(movie.get("id"))
    runtime = movie.get("runtime")

    return Media(
        id=route_id or build_media_route_id(provider="tmdb", provider_id=tmdb_id, type="movie"),
        type="movie",
        title=movie.get("title") or movie.get("original_title") or "Untitled",
        year=year_from_date(movie.get("release_date")),
        poster_url=tmdb.build_image_url(movie.get("poster_path")),
        backdrop_url=tmdb.build_image_url(movie.get("backdrop_path"), base=tmdb.TMDB_BACKDROP_BASE_URL),
        provider="tmdb",
        provider_id=tmdb_id,
        description=movie.get("overview") or None,
        duration_minutes=runtime if isinstance(runtime, int) and runtime > 0 else None,
        content_rating=extract_movie_certification(movie.get("release_dates")),
        directors=extract_people_by_job(crew, ["Director"]),
        writers=extract_people_by_job(crew, WRITER_JOBS) + extract_people_by_job(crew, ["Author"]),
        cast=cast_names,
        cast_members=cast_members,
        studios=names_from(movie.get("production_companies")),
        genres=names_from(movie.get("genres")),
    )


def map_tmdb_tv(show: Mapping[str, Any], *, route_id: str | None = None) -> Media:
    credits = show.get("credits") or {}
    crew = [m for m in credits.get("crew") or [] if isinstance(m, dict)]
    cast_names, cast_members = _tmdb_cast([m for m in credits.get("cast") or [] if isinstance(m, dict)])
    tmdb_id = str(show.get("id"))
    episodes = show.get("number_of_episodes")

    return Media(
        id=route_id or build_media_route_id(provider="tmdb", provider_id=tmdb_id, type="tv"),
        type="tv",
        title=show.get("name") or show.get("original_name") or "Untitled",
        year=year_from_date(show.get("first_air_date")),
        poster_url=tmdb.build_image_url(show.get("poster_path")),
        backdrop_url=tmdb.build_image_url(show.get("backdrop_path"), base=tmdb.TMDB_BACKDROP_BASE_URL),
        provider="tmdb",
        provider_id=tmdb_id,
        description=show.get("overview") or None,
        duration_minutes=tmdb.extract_runtime_minutes("tv", show),
        episode_count=episodes if isinstance(episodes, int) else None,
        content_rating=extract_tv_certification(show.get("content_ratings")),
        directors=extract_people_by_job(crew, ["Director"]) + names_from(show.get("created_by")),
        writers=extract_people_by_job(crew, ["Writer", "Screenplay", "Story"]),
        cast=cast_names,
        cast_members=cast_members,
        studios=names_from(show.get("production_companies")) + names_from(show.get("networks")),
        genres=names_from(show.get("genres")),
    )


def map_anilist_anime(detail: Mapping[str, Any]) -> Media:
    title = detail.get("title") or {}
    year = detail.get("seasonYear")
    if not isinstance(year, int):
        year = (detail.get("startDate") or {}).get("year")
    duration = detail.get("duration")
    episodes = detail.get("episodes")
    anilist_id = str(detail.get("id"))
    studio_nodes = (detail.get("studios") or {}).get("nodes") or []

    return Media(
        id=build_media_route_id(provider="anilist", provider_id=anilist_id, type="anime"),
        type="anime",
        title=title.get("english") or title.get("romaji") or title.get("native") or "Untitled",
        year=year if isinstance(year, int) else None,
        poster_url=(detail.get("coverImage") or {}).get("large") or None,
        backdrop_url=detail.get("bannerImage") or None,
        provider="anilist",
        provider_id=anilist_id,
        description=strip_html(detail.get("description")),
        duration_minutes=duration if isinstance(duration, int) else None,
        episode_count=episodes if isinstance(episodes, int) else None,
        studios=names_from([n for n in studio_nodes if isinstance(n, dict)]),
        genres=clean_names(detail.get("genres")),
    )


def map_igdb_game(game: Mapping[str, Any]) -> Media:
    game_id = str(game.get("id"))
    companies = [c for c in game.get("involved_companies") or [] if isinstance(c, dict)]
    developers = [
        (c.get("company") or {}).get("name") for c in companies if c.get("developer")
    ]
    publishers = [
        (c.get("company") or {}).get("name") for c in companies if c.get("publisher") and not c.get("developer")
    ]
    images = [
        igdb.build_image_url(item.get("image_id"), "t_screenshot_big")
        for item in (game.get("screenshots") or []) + (game.get("artworks") or [])
        if isinstance(item, dict)
    ]
    artworks = [a for a in game.get("artworks") or [] if isinstance(a, dict)]

    return Media(
        id=build_media_route_id(provider="igdb", provider_id=game_id, type="game"),
        type="game",
        title=game.get("name") or "Untitled",
        year=year_from_timestamp(game.get("first_release_date")),
        poster_url=igdb.build_image_url((game.get("cover") or {}).get("image_id"), "t_cover_big"),
        backdrop_url=igdb.build_image_url(artworks[0].get("image_id"), "t_1080p") if artworks else None,
        additional_images=[url for url in images if url],
        provider="igdb",
        provider_id=game_id,
        description=game.get("summary") or None,
        studios=clean_names(developers + publishers),
        genres=names_from(game.get("genres")),
    )


def _minutes_from_ms(value: Any) -> int | None:
    if not isinstance(value, (int, float)) or value <= 0:
        return None
    return max(1, round_half_up(value / 60000))


def map_spotify_track(track: Mapping[str, Any]) -> Media:
    track_id = str(track.get("id"))
    album = track.get("album") or {}
    return Media(
        id=build_media_route_id(provider="spotify", provider_id=track_id, type="song"),
        type="song",
        title=track.get("name") or "Untitled",
        year=year_from_date(album.get("release_date")),
        poster_url=first_image_url(album.get("images")),
        provider="spotify",
        provider_id=track_id,
        description=album.get("name") or None,
        duration_minutes=_minutes_from_ms(track.get("duration_ms")),
        cast=artist_names(track),
    )


def map_spotify_album(album: Mapping[str, Any]) -> Media:
    album_id = str(album.get("id"))
    tracks = [t for t in (album.get("tracks") or {}).get("items") or [] if isinstance(t, dict)]
    total_ms = sum(t.get("duration_ms") or 0 for t in tracks)
    label = album.get("label")
    return Media(
        id=build_media_route_id(provider="spotify", provider_id=album_id, type="album"),
        type="album",
        title=album.get("name") or "Untitled",
        year=year_from_date(album.get("release_date")),
        poster_url=first_image_url(album.get("images")),
        provider="spotify",
        provider_id=album_id,
        duration_minutes=_minutes_from_ms(total_ms),
        episode_count=album.get("total_tracks") if isinstance(album.get("total_tracks"), int) else None,
        cast=artist_names(album),
        studios=[label] if isinstance(label, str) and label else [],
        genres=clean_names(album.get("genres")),
    )


def _fetch_tmdb(provider_id: str, type_: str, session: requests.Session | None) -> Media | None:
    if type_ not in tmdb.TMDB_KINDS:
        raise MediaValidationError(f"Unsupported media type '{type_}'.")
    try:
        payload = tmdb.fetch_details(type_, provider_id, append_to_response=TMDB_DETAIL_APPENDS, session=session)
    except PROVIDER_CLIENT_ERRORS as exc:
        if getattr(exc, "status_code", None) == 404:
            return None
        raise provider_error("tmdb", exc, label="TMDB") from exc
    if type_ == "tv":
        return map_tmdb_tv(payload)
    return map_tmdb_movie(payload)


def _fetch_anilist(provider_id: str, type_: str, session: requests.Session | None) -> Media | None:
    if type_ != "anime":
        raise MediaValidationError(f"Unsupported media type '{type_}'.")
    if not provider_id.isdigit():
        raise MediaValidationError("Invalid AniList id.")
    try:
        detail = anilist.fetch_anime(int(provider_id), session=session)
    except PROVIDER_CLIENT_ERRORS as exc:
        if getattr(exc, "status_code", None) == 404:
            return None
        raise provider_error("anilist", exc, label="AniList") from exc
    return map_anilist_anime(detail) if detail else None


def _fetch_igdb(provider_id: str, type_: str, session: requests.Session | None) -> Media | None:
    if type_ != "game":
        raise MediaValidationError(f"Unsupported media type '{type_}'.")
    if not provider_id.isdigit():
        raise MediaValidationError("Invalid IGDB id.")
    try:
        game = igdb.fetch_game(int(provider_id), session=session)
    except PROVIDER_CLIENT_ERRORS as exc:
        raise provider_error("igdb", exc, label="IGDB") from exc
    return map_igdb_game(game) if game else None


def _fetch_spotify(provider_id: str, type_: str, session: requests.Session | None) -> Media | None:
    if type_ not in ("song", "track", "album"):
        raise MediaValidationError(f"Unsupported media type '{type_}'.")
    try:
        if type_ == "album":
            return map_spotify_album(spotify.fetch_album(provider_id, session=session))
        return map_spotify_track(spotify.fetch_track(provider_id, session=session))
    except PROVIDER_CLIENT_ERRORS as exc:
        if getattr(exc, "status_code", None) in (400, 404):
            return None
        raise provider_error("spotify", exc, label="Spotify") from exc


_FETCHERS = {
    "tmdb": _fetch_tmdb,
    "anilist": _fetch_anilist,
    "igdb": _fetch_igdb,
    "spotify": _fetch_spotify,
}


def fetch_media_detail(
    provider: str,
    provider_id: str,
    type_: str | None = None,
    *,
    session: requests.Session | None = None,
) -> Media | None:
    """
    Fetch a single media item from its provider.

    Returns None when the provider does not know the id. Raises
    `MediaValidationError` for unsupported provider/type combinations and
    `ProviderError` when the provider call fails.
    """

    fetcher = _FETCHERS.get(provider)
    if fetcher is None:
        raise MediaValidationError(f"Unsupported provider '{provider}'")
    provider_id = str(provider_id or "").strip()
    if not provider_id:
        raise MediaValidationError("Missing media id.")
    return fetcher(provider_id, (type_ or "movie").strip().lower(), session)
