from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

MediaType = Literal["movie", "tv", "anime", "game", "song", "album"]
EntryStatus = Literal["Planning", "Watching", "Listening", "Playing", "Completed", "Dropped"]
MediaProvider = Literal["tmdb", "anilist", "igdb", "spotify"]


@dataclass(frozen=True)
class CastMember:
    name: str
    role: str | None = None


@dataclass(frozen=True)
class Media:
    """
    Normalized media record built from a provider detail payload.

    `id` is the route id (see `mml_backend.media_route`), not the database id.
    """

    id: str
    type: str
    title: str
    provider: str
    provider_id: str
    year: int | None = None
    poster_url: str | None = None
    backdrop_url: str | None = None
    additional_images: list[str] = field(default_factory=list)
    description: str | None = None
    duration_minutes: int | None = None
    episode_count: int | None = None
    content_rating: str | None = None
    directors: list[str] = field(default_factory=list)
    writers: list[str] = field(default_factory=list)
    cast: list[str] = field(default_factory=list)
    cast_members: list[CastMember] = field(default_factory=list)
    studios: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SearchResultItem:
    id: str
    title: str
    subtitle: str
    type: str
    provider: str
    provider_id: str
    tags: list[str] = field(default_factory=list)
    description: str | None = None
    cover_url: str | None = None
    year: int | None = None
    duration_seconds: int | None = None


@dataclass(frozen=True)
class MediaPayload:
    """
    Client-supplied media reference used when persisting entries and list items.
    """

    provider: str
    provider_id: str
    type: str
    title: str
    poster_url: str | None = None
    description: str | None = None
    year: int | None = None
    duration_minutes: int | None = None
    episode_count: int | None = None
    genres: list[str] | None = None
    directors: list[str] | None = None
    writers: list[str] | None = None
    cast: list[str] | None = None


_ENTRY_PATCH_FIELDS = ("status", "rating", "note", "episode_progress")


@dataclass(frozen=True)
class EntryPatch:
    """
    Partial update for a user's entry.

    `provided` records which fields the caller actually sent, so that an explicit
    `rating=None` (clear the rating) can be told apart from "leave unchanged".
    """

    status: str | None = None
    rating: float | None = None
    note: str | None = None
    episode_progress: int | None = None
    provided: frozenset[str] = frozenset()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EntryPatch":
        values = {key: data[key] for key in _ENTRY_PATCH_FIELDS if key in data}
        return cls(**values, provided=frozenset(values))

    def has(self, name: str) -> bool:
        return name in self.provided
