from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping

from mml_backend.utils.text import round_half_up

NEW_ENTRY_WINDOW = timedelta(days=7)
TOP_GENRE_LIMIT = 5

CATEGORY_LABELS = {
    "movie": "Movies",
    "tv": "TV Shows",
    "anime": "Anime",
    "game": "Games",
    "song": "Tracks",
    "album": "Albums",
}
CATEGORY_COLORS = {
    "movie": "--chart-1",
    "tv": "--chart-2",
    "anime": "--chart-3",
    "game": "--chart-4",
    "song": "--chart-5",
    "album": "--chart-6",
}


@dataclass(frozen=True)
class CategoryStat:
    id: str
    label: str
    count: int
    percentage: int
    color_var: str


@dataclass(frozen=True)
class GenreStat:
    label: str
    count: int


@dataclass(frozen=True)
class DashboardStats:
    total_items: int = 0
    new_this_week: int = 0
    average_rating: float | None = None
    category_distribution: list[CategoryStat] = field(default_factory=list)
    top_genres: list[GenreStat] = field(default_factory=list)
    most_watched_genre: str | None = None
    most_active_day: str | None = None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a Postgres/ISO timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _media(entry: Mapping[str, Any]) -> Mapping[str, Any]:
    media = entry.get("media")
    return media if isinstance(media, Mapping) else {}


def _ranked(counter: Counter) -> list[tuple[str, int]]:
    # Ties keep first-seen order.
    return sorted(counter.items(), key=lambda item: -item[1])


def compute_dashboard_stats(entries: Iterable[Mapping[str, Any]], now: datetime | None = None) -> DashboardStats:
    """
    Summarise a user's entries for the dashboard.

    `entries` use the shape returned by `list_entries` (`created_at`, `rating`,
    and a nested `media` with `type` and `genres`).
    """

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    entries = list(entries)
    total = len(entries)
    if total == 0:
        return DashboardStats()

    created = [parse_timestamp(e.get("created_at")) for e in entries]
    new_this_week = sum(1 for ts in created if ts is not None and now - ts <= NEW_ENTRY_WINDOW)

    ratings = [e["rating"] for e in entries if isinstance(e.get("rating"), (int, float))]
    average = round(sum(ratings) / len(ratings), 1) if ratings else None

    types: Counter = Counter()
    genres: Counter = Counter()
    for entry in entries:
        media = _media(entry)
        if media.get("type"):
            types[media["type"]] += 1
        for genre in media.get("genres") or []:
            if isinstance(genre, str) and genre:
                genres[genre] += 1

    distribution = [
        CategoryStat(
            id=type_,
            label=CATEGORY_LABELS.get(type_, type_.title()),
            count=count,
            percentage=round_half_up(count / total * 100),
            color_var=CATEGORY_COLORS.get(type_, "--chart-1"),
        )
        for type_, count in _ranked(types)
    ]
    top_genres = [GenreStat(label=label, count=count) for label, count in _ranked(genres)[:TOP_GENRE_LIMIT]]

    days: Counter = Counter(ts.strftime("%A") for ts in created if ts is not None)
    ranked_days = _ranked(days)

    return DashboardStats(
        total_items=total,
        new_this_week=new_this_week,
        average_rating=average,
        category_distribution=distribution,
        top_genres=top_genres,
        most_watched_genre=top_genres[0].label if top_genres else None,
        most_active_day=ranked_days[0][0] if ranked_days else None,
    )
