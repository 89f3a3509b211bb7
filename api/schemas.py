"""
Request/response models shared by the routers.

The web client speaks camelCase; fields are snake_case in Python and aliased on
the wire.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mml_backend.models.media import EntryPatch, EntryStatus, MediaPayload, MediaProvider, MediaType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OkResponse(CamelModel):
    ok: bool = True


# --- Media ---


class CastMemberOut(CamelModel):
    name: str
    role: str | None = None


class MediaOut(CamelModel):
    id: str
    type: str
    title: str
    provider: str
    provider_id: str
    year: int | None = None
    poster_url: str | None = None
    backdrop_url: str | None = None
    additional_images: list[str] = []
    description: str | None = None
    duration_minutes: int | None = None
    episode_count: int | None = None
    content_rating: str | None = None
    directors: list[str] = []
    writers: list[str] = []
    cast: list[str] = []
    cast_members: list[CastMemberOut] = []
    studios: list[str] = []
    genres: list[str] = []


class MediaResponse(CamelModel):
    media: MediaOut


class SearchItemOut(CamelModel):
    id: str
    title: str
    subtitle: str | None = None
    description: str | None = None
    cover_url: str | None = None
    tags: list[str]
    type: str
    provider: str
    provider_id: str
    year: int | None = None
    duration_seconds: int | None = None


class SearchResponse(CamelModel):
    items: list[SearchItemOut]


class MediaPayloadIn(CamelModel):
    provider: MediaProvider
    provider_id: str = Field(min_length=1)
    type: MediaType
    title: str = Field(min_length=1)
    poster_url: str | None = None
    description: str | None = None
    year: int | None = None
    duration_minutes: int | None = None
    episode_count: int | None = None
    genres: list[str] | None = None
    directors: list[str] | None = None
    writers: list[str] | None = None
    cast: list[str] | None = None

    def to_payload(self) -> MediaPayload:
        return MediaPayload(**self.model_dump())


# --- Entries ---


class EntryIn(CamelModel):
    status: EntryStatus | None = None
    rating: float | None = Field(default=None, ge=0, le=10)
    note: str | None = None
    episode_progress: int | None = Field(default=None, ge=0)

    def to_patch(self) -> EntryPatch:
        return EntryPatch.from_mapping(self.model_dump(include=self.model_fields_set))


class PersistEntryIn(CamelModel):
    user_id: str | None = None
    media: MediaPayloadIn
    entry: EntryIn | None = None


class EntrySummaryOut(CamelModel):
    status: str
    rating: float | None = None
    note: str | None = None
    episode_progress: int | None = None


class EntryResponse(CamelModel):
    entry: EntrySummaryOut | None = None


class EntryMediaOut(CamelModel):
    title: str
    poster_url: str | None = None
    description: str | None = None
    type: str
    provider: str
    provider_id: str
    year: int | None = None
    duration_minutes: int | None = None
    episode_count: int | None = None
    genres: list[str] | None = None


class EntryItemOut(CamelModel):
    status: str
    rating: float | None = None
    note: str | None = None
    episode_progress: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    media: EntryMediaOut


class EntriesResponse(CamelModel):
    items: list[EntryItemOut]


class RatedMediaOut(EntryMediaOut):
    directors: list[str] | None = None
    writers: list[str] | None = None
    cast: list[str] | None = None


class RatedItemOut(CamelModel):
    status: str
    rating: float
    note: str | None = None
    episode_progress: int | None = None
    updated_at: str | None = None
    first_rated_at: str | None = None
    media: RatedMediaOut


class RatingsResponse(CamelModel):
    items: list[RatedItemOut]


# --- Stats ---


class CategoryStatOut(CamelModel):
    id: str
    label: str
    count: int
    percentage: int
    color_var: str


class GenreStatOut(CamelModel):
    label: str
    count: int


class StatsResponse(CamelModel):
    total_items: int
    new_this_week: int
    average_rating: float | None = None
    category_distribution: list[CategoryStatOut]
    top_genres: list[GenreStatOut]
    most_watched_genre: str | None = None
    most_active_day: str | None = None


# --- Lists ---


class ListOut(CamelModel):
    id: Any
    title: str
    description: str | None = None
    updated_at: str | None = None


class ListsResponse(CamelModel):
    lists: list[ListOut]


class ListResponse(CamelModel):
    list_: ListOut = Field(alias="list")


class ListCreateIn(CamelModel):
    user_id: str | None = None
    title: str = Field(min_length=1)
    description: str | None = None


class ListPatchIn(CamelModel):
    user_id: str | None = None
    title: str | None = None
    description: str | None = None


class ListItemMediaOut(CamelModel):
    id: Any
    title: str
    poster_url: str | None = None
    description: str | None = None
    type: str
    provider: str
    provider_id: str


class ListItemOut(CamelModel):
    created_at: str | None = None
    media: ListItemMediaOut


class ListDetailResponse(CamelModel):
    list_: ListOut = Field(alias="list")
    items: list[ListItemOut]


class ListItemIn(CamelModel):
    user_id: str | None = None
    media: MediaPayloadIn


# --- Posters ---


class PosterResponse(CamelModel):
    posters: list[str]


# --- Demo ---


class DemoListMediaOut(EntryMediaOut):
    id: str


class DemoListEntryOut(CamelModel):
    status: str
    rating: float | None = None
    note: str | None = None
    episode_progress: int | None = None
    updated_at: str | None = None
    first_rated_at: str | None = None


class DemoListItemOut(CamelModel):
    id: str
    created_at: str | None = None
    media: DemoListMediaOut
    entry: DemoListEntryOut | None = None


class DemoListOut(CamelModel):
    id: str
    title: str
    description: str | None = None
    updated_at: str | None = None
    items: list[DemoListItemOut]


class DemoStateOut(CamelModel):
    version: int
    seed: int
    entries: list[EntryItemOut]
    lists: list[DemoListOut]


class DemoEntryIn(CamelModel):
    media: MediaPayloadIn
    entry: EntryIn


class DemoListPatchIn(CamelModel):
    title: str | None = None
    description: str | None = None


class DemoEntryResponse(CamelModel):
    entry: EntryItemOut | None = None
