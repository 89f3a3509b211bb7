"""
Route ids used by the frontend to address a media detail page.

Examples:
- `tmdb-27205` (movie), `tmdb-tv-1396`
- `anilist-anime-16498`
- `igdb-game-1942`
- `spotify-track-4uLU6hMCjMI75M1A2tKUQC`, `spotify-album-...`
"""

from __future__ import annotations

from typing import NamedTuple


class ParsedMediaId(NamedTuple):
    provider: str
    type: str
    source_id: str


def build_media_route_id(*, provider: str, provider_id: str, type: str) -> str:
    if provider == "tmdb":
        if type == "tv":
            return f"tmdb-tv-{provider_id}"
        return f"tmdb-{provider_id}"
    if provider == "anilist":
        return f"anilist-anime-{provider_id}"
    if provider == "igdb":
        return f"igdb-game-{provider_id}"
    if provider == "spotify":
        segment = "album" if type == "album" else "track"
        return f"spotify-{segment}-{provider_id}"
    return f"{provider}-{provider_id}"


def parse_media_route_id(route_id: str) -> ParsedMediaId | None:
    parts = (route_id or "").strip().split("-")
    if len(parts) < 2 or not parts[0]:
        return None

    provider, maybe_type = parts[0], parts[1]
    maybe_id = parts[2] if len(parts) > 2 else ""

    if provider == "spotify":
        if maybe_type not in ("track", "album"):
            return None
        source_id = "-".join(parts[2:])
        if not source_id:
            return None
        return ParsedMediaId(provider, "album" if maybe_type == "album" else "song", source_id)

    if provider == "igdb":
        if maybe_type != "game" or not maybe_id:
            return None
        return ParsedMediaId(provider, "game", maybe_id)

    if provider == "anilist":
        if maybe_type != "anime" or not maybe_id:
            return None
        return ParsedMediaId(provider, "anime", maybe_id)

    if provider != "tmdb":
        return None

    if maybe_type == "tv":
        if not maybe_id:
            return None
        return ParsedMediaId(provider, "tv", maybe_id)

    if maybe_type == "movie":
        source_id = "-".join(parts[2:])
        if not source_id:
            return None
        return ParsedMediaId(provider, "movie", source_id)

    source_id = "-".join(parts[1:])
    if not source_id:
        return None
    return ParsedMediaId(provider, "movie", source_id)


def media_key(*, provider: str, type: str, provider_id: str) -> str:
    """Identity of a media item across providers (used for dedupe)."""
    return f"{provider}:{type}:{provider_id}"
