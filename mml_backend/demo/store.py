"""
Demo mode: a seeded, per-session simulation of a user's entries and lists.

Nothing here touches the database. A fresh session is populated from live
provider search results (falling back to the search item when the detail call
fails), then every mutation is applied to the stored JSON document.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

from mml_backend.demo.storage import DemoStorage
from mml_backend.errors import MediaValidationError, ProviderError
from mml_backend.media_detail import fetch_media_detail
from mml_backend.media_route import build_media_route_id, media_key
from mml_backend.models.media import EntryPatch, Media, SearchResultItem
from mml_backend.search import search_media
from mml_backend.utils.concurrency import map_settled
from mml_backend.utils.text import round_half_up

logger = logging.getLogger(__name__)

DEMO_VERSION = 1
DETAIL_CONCURRENCY = 5
DEFAULT_EPISODE_MAX = 12
DEMO_NOTE = "Saved to demo list."


@dataclass(frozen=True)
class DemoListDefinition:
    id: str
    title: str
    description: str
    types: tuple[str, ...]


DEMO_LIST_DEFINITIONS = (
    DemoListDefinition(
        id="demo-movies",
        title="Movies List",
        description="A mix of standout films across styles and eras.",
        types=("movie", "tv"),
    ),
    DemoListDefinition(
        id="demo-anime",
        title="Anime List",
        description="Big stories, bold characters, and binge-worthy arcs.",
        types=("anime",),
    ),
    DemoListDefinition(
        id="demo-games",
        title="Games List",
        description="Adventures, combat loops, and late-night sessions.",
        types=("game",),
    ),
    DemoListDefinition(
        id="demo-music",
        title="Tracks List",
        description="Albums and tracks on repeat right now.",
        types=("song", "album"),
    ),
)

DEMO_QUERIES: dict[str, tuple[str, ...]] = {
    "movie": ("matrix", "inception", "dune", "interstellar", "mad max"),
    "tv": ("breaking bad", "stranger things", "the office", "severance"),
    "anime": ("attack on titan", "demon slayer", "jujutsu kaisen", "fullmetal"),
    "game": ("elden ring", "witcher 3", "hades", "celeste", "stardew valley"),
    "song": ("billie eilish", "the weeknd", "daft punk", "arctic monkeys"),
    "album": ("taylor swift", "kendrick lamar", "radiohead", "drake"),
}

# Order matters: the shared RNG is consumed plan by plan.
DEMO_PLANS: tuple[tuple[str, int], ...] = (
    ("movie", 6),
    ("tv", 4),
    ("anime", 6),
    ("game", 6),
    ("album", 3),
    ("song", 3),
)

STATUS_BY_TYPE: dict[str, tuple[str, ...]] = {
    "movie": ("Completed", "Watching", "Planning"),
    "tv": ("Watching", "Completed", "Planning"),
    "anime": ("Watching", "Completed", "Planning"),
    "game": ("Playing", "Completed", "Planning"),
    "song": ("Listening", "Completed"),
    "album": ("Listening", "Completed"),
}


@dataclass(frozen=True)
class MediaReplacement:
    match_title: str
    provider: str
    provider_id: str
    type: str
    fallback: Media


# Search occasionally surfaces titles that make poor demo content; they are
# swapped for a fixed pick.
DEMO_MEDIA_REPLACEMENTS = (
    MediaReplacement(
        match_title="container interstellar",
        provider="tmdb",
        provider_id="299536",
        type="movie",
        fallback=Media(
            id=build_media_route_id(provider="tmdb", provider_id="299536", type="movie"),
            type="movie",
            title="Avengers: Infinity War",
            provider="tmdb",
            provider_id="299536",
            year=2018,
            poster_url="https://image.tmdb.org/t/p/w500/7WsyChQLEftFiDOVTGkv3hFpyyt.jpg",
            backdrop_url="https://image.tmdb.org/t/p/w1280/52AfXWuXCHn3UjD17rBruA9f5qb.jpg",
            description=(
                "The Avengers and their allies must be willing to sacrifice all in an attempt "
                "to defeat the powerful Thanos."
            ),
            genres=["Action", "Adventure", "Sci-Fi"],
        ),
    ),
)

SearchFn = Callable[[str, str], list[SearchResultItem]]
DetailFn = Callable[[str, str, str], "Media | None"]


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _key(media: Mapping[str, Any]) -> str:
    return media_key(provider=media.get("provider"), type=media.get("type"), provider_id=media.get("provider_id"))


def shuffled(items: list[Any], rng: random.Random) -> list[Any]:
    result = list(items)
    rng.shuffle(result)
    return result


def fallback_media(item: SearchResultItem) -> Media:
    """A `Media` built from the search item alone, used when the detail lookup fails."""
    duration = None
    if isinstance(item.duration_seconds, (int, float)):
        duration = max(1, round_half_up(item.duration_seconds / 60))
    return Media(
        id=build_media_route_id(provider=item.provider, provider_id=item.provider_id, type=item.type),
        type=item.type,
        title=item.title,
        provider=item.provider,
        provider_id=item.provider_id,
        year=item.year,
        poster_url=item.cover_url,
        description=item.description,
        duration_minutes=duration,
        genres=list(item.tags or []),
    )


def entry_media_from(media: Media | Mapping[str, Any]) -> dict[str, Any]:
    get = media.get if isinstance(media, Mapping) else lambda name: getattr(media, name, None)
    return {
        "title": get("title"),
        "poster_url": get("poster_url"),
        "description": get("description"),
        "type": get("type"),
        "provider": get("provider"),
        "provider_id": get("provider_id"),
        "year": get("year"),
        "duration_minutes": get("duration_minutes"),
        "episode_count": get("episode_count"),
        "genres": get("genres"),
    }


def list_media_from(media: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": build_media_route_id(
            provider=media.get("provider"), provider_id=media.get("provider_id"), type=media.get("type")
        ),
        **media,
    }


def rating_for_status(status: str, rng: random.Random) -> int | None:
    if status in ("Planning", "Dropped"):
        return None
    return max(6, round_half_up(rng.random() * 4 + 6))


def episode_progress_for_status(status: str, episode_count: int | None, rng: random.Random) -> int | None:
    if status not in ("Watching", "Dropped"):
        return None
    upper = episode_count if isinstance(episode_count, int) and episode_count > 0 else DEFAULT_EPISODE_MAX
    return max(1, min(upper, round_half_up(rng.random() * upper)))


def build_demo_lists(entries: list[dict[str, Any]], now: datetime) -> list[dict[str, Any]]:
    lists = []
    for definition in DEMO_LIST_DEFINITIONS:
        items = []
        matching = [e for e in entries if e["media"].get("type") in definition.types]
        for index, entry in enumerate(matching):
            items.append(
                {
                    "id": f"{definition.id}-{index}",
                    "created_at": entry["created_at"],
                    "media": list_media_from(entry["media"]),
                    "entry": {
                        "status": entry["status"],
                        "rating": entry.get("rating"),
                        "note": entry.get("note"),
                        "episode_progress": entry.get("episode_progress"),
                        "updated_at": entry["updated_at"],
                        "first_rated_at": entry["created_at"] if entry.get("rating") else None,
                    },
                }
            )
        updated_at = next(
            (item["entry"]["updated_at"] for item in items if item["entry"].get("updated_at")),
            _iso(now),
        )
        lists.append(
            {
                "id": definition.id,
                "title": definition.title,
                "description": definition.description,
                "updated_at": updated_at,
                "items": items,
            }
        )
    return lists


def build_rated_items(entries: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Rated entries in the shape of the `/ratings` response."""
    items = []
    for entry in entries:
        rating = entry.get("rating") or 0
        if rating <= 0:
            continue
        media = entry.get("media") or {}
        items.append(
            {
                "status": entry.get("status"),
                "rating": rating,
                "note": entry.get("note"),
                "episode_progress": entry.get("episode_progress"),
                "updated_at": entry.get("updated_at"),
                "first_rated_at": entry.get("created_at"),
                "media": {
                    "title": media.get("title"),
                    "poster_url": media.get("poster_url"),
                    "description": media.get("description"),
                    "type": media.get("type"),
                    "provider": media.get("provider"),
                    "provider_id": media.get("provider_id"),
                    "year": media.get("year"),
                    "duration_minutes": media.get("duration_minutes"),
                    "episode_count": media.get("episode_count"),
                    "genres": media.get("genres"),
                    "directors": None,
                    "writers": None,
                    "cast": None,
                },
            }
        )
    return items


def _find_replacement(title: Any) -> MediaReplacement | None:
    if not isinstance(title, str):
        return None
    lowered = title.lower()
    return next((r for r in DEMO_MEDIA_REPLACEMENTS if r.match_title == lowered), None)


class DemoStore:
    """
    Demo state operations for one storage backend.

    Every method that reads an existing session returns None when the session
    has no state yet; callers map that to 404.
    """

    def __init__(
        self,
        storage: DemoStorage,
        *,
        search: SearchFn | None = None,
        fetch_detail: DetailFn | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.storage = storage
        self._search = search or (lambda type_, query: search_media(type_, query))
        self._fetch_detail = fetch_detail or (lambda provider, provider_id, type_: fetch_media_detail(provider, provider_id, type_))
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()

    # --- seeding ---

    def _search_safely(self, type_: str, query: str) -> list[SearchResultItem]:
        try:
            return self._search(type_, query)
        except (MediaValidationError, ProviderError) as exc:
            logger.warning(f"Demo search for {type_} '{query}' failed: {exc}")
            return []

    def collect_media_by_type(self, type_: str, count: int, rng: random.Random) -> list[SearchResultItem]:
        results: list[SearchResultItem] = []
        seen: set[str] = set()
        for query in shuffled(list(DEMO_QUERIES[type_]), rng):
            for item in self._search_safely(type_, query):
                key = media_key(provider=item.provider, type=item.type, provider_id=item.provider_id)
                if key in seen:
                    continue
                seen.add(key)
                results.append(item)
            if len(results) >= count:
                break

        with_images = [item for item in results if item.cover_url]
        pool = with_images if len(with_images) >= count else results
        return shuffled(pool, rng)[:count]

    def _resolve_replacement(self, media: Media) -> Media:
        match = _find_replacement(media.title)
        if match is None:
            return media
        return self._detail_or_none(match.provider, match.provider_id, match.type) or match.fallback

    def _detail_or_none(self, provider: str, provider_id: str, type_: str) -> Media | None:
        try:
            return self._fetch_detail(provider, provider_id, type_)
        except (MediaValidationError, ProviderError) as exc:
            logger.warning(f"Demo detail lookup for {provider}:{type_}:{provider_id} failed: {exc}")
            return None

    def create_state(self, seed: int | None = None) -> dict[str, Any]:
        seed = seed if seed is not None else random.SystemRandom().randrange(1_000_000_000)
        rng = random.Random(seed)

        unique: dict[str, SearchResultItem] = {}
        for type_, count in DEMO_PLANS:
            for item in self.collect_media_by_type(type_, count, rng):
                unique[media_key(provider=item.provider, type=item.type, provider_id=item.provider_id)] = item

        items = shuffled(list(unique.values()), rng)
        details = map_settled(
            lambda item: self._detail_or_none(item.provider, item.provider_id, item.type),
            items,
            concurrency=DETAIL_CONCURRENCY,
        )
        media_list = [
            self._resolve_replacement(result.value if result.ok and result.value else fallback_media(item))
            for item, result in zip(items, details)
        ]

        now = self._clock()
        entries: list[dict[str, Any]] = []
        for index, media in enumerate(media_list):
            options = STATUS_BY_TYPE.get(media.type) or ("Planning",)
            status = options[int(rng.random() * len(options))]
            created_at = _iso(now - timedelta(days=index))
            rating = 10 if index == 0 else rating_for_status(status, rng)
            entries.append(
                {
                    "status": status,
                    "rating": rating,
                    "note": DEMO_NOTE if rating else None,
                    "episode_progress": episode_progress_for_status(status, media.episode_count, rng),
                    "created_at": created_at,
                    "updated_at": created_at,
                    "media": entry_media_from(media),
                }
            )

        logger.info(f"Seeded demo state {seed} with {len(entries)} entries")
        return {
            "version": DEMO_VERSION,
            "seed": seed,
            "entries": entries,
            "lists": build_demo_lists(entries, now),
        }

    def find_replacements(self, state: Mapping[str, Any]) -> dict[str, Media]:
        """Replacement media for entry titles that have one, keyed by lowercased title."""
        replacements: dict[str, Media] = {}
        for entry in state.get("entries") or []:
            match = _find_replacement((entry.get("media") or {}).get("title"))
            if match is None or match.match_title in replacements:
                continue
            replacements[match.match_title] = (
                self._detail_or_none(match.provider, match.provider_id, match.type) or match.fallback
            )
        return replacements

    def normalize_state(
        self, state: dict[str, Any], replacements: Mapping[str, Media] | None = None
    ) -> dict[str, Any]:
        """Swap any entry whose title has a replacement, in entries and list items."""
        if replacements is None:
            replacements = self.find_replacements(state)
        if not replacements:
            return state

        def replace_media(media: dict[str, Any]) -> dict[str, Any] | None:
            title = media.get("title")
            return replacements.get(title.lower()) if isinstance(title, str) else None

        entries = []
        for entry in state.get("entries") or []:
            replacement = replace_media(entry.get("media") or {})
            entries.append({**entry, "media": entry_media_from(replacement)} if replacement else entry)

        lists = []
        for list_ in state.get("lists") or []:
            items = []
            for item in list_.get("items") or []:
                replacement = replace_media(item.get("media") or {})
                if replacement:
                    item = {**item, "media": list_media_from(entry_media_from(replacement))}
                items.append(item)
            lists.append({**list_, "items": items})

        return {**state, "entries": entries, "lists": lists}

    # --- session operations ---

    def get_state(self, session_id: str) -> dict[str, Any] | None:
        state = self.storage.load(session_id)
        if state is None or state.get("version") != DEMO_VERSION:
            return None
        return state

    def ensure_state(self, session_id: str, *, seed: int | None = None) -> dict[str, Any]:
        """
        Return the session's state, seeding it on first use.

        Provider lookups run outside the lock; the load-modify-save that follows
        holds it so concurrent mutations are not overwritten.
        """

        stored = self.get_state(session_id)
        if stored is not None:
            replacements = self.find_replacements(stored)
            with self._lock:
                current = self.get_state(session_id)
                if current is not None:
                    state = self.normalize_state(current, replacements)
                    self.storage.save(session_id, state)
                    return state

        created = self.create_state(seed)
        with self._lock:
            current = self.get_state(session_id)
            if current is not None:
                return current
            self.storage.save(session_id, created)
            return created

    def reset(self, session_id: str) -> None:
        self.storage.delete(session_id)

    def get_entry_by_media(self, session_id: str, media: Mapping[str, Any]) -> dict[str, Any] | None:
        state = self.get_state(session_id)
        if state is None:
            return None
        key = _key(media)
        return next((e for e in state.get("entries") or [] if _key(e.get("media") or {}) == key), None)

    def update_entry(self, session_id: str, media: Mapping[str, Any], patch: EntryPatch) -> dict[str, Any] | None:
        """
        Apply `patch` to the entry for `media`, creating it at the top of the
        entries when missing, and mirror the change into any list item for it.
        """

        with self._lock:
            state = self.get_state(session_id)
            if state is None:
                return None

            now = _iso(self._clock())
            key = _key(media)

            def patched(entry: Mapping[str, Any]) -> dict[str, Any]:
                return {
                    **entry,
                    "status": patch.status or entry.get("status"),
                    "rating": patch.rating if patch.has("rating") else entry.get("rating"),
                    "note": patch.note if patch.has("note") else entry.get("note"),
                    "episode_progress": (
                        patch.episode_progress if patch.has("episode_progress") else entry.get("episode_progress")
                    ),
                    "updated_at": now,
                }

            found = False
            entries = []
            for entry in state.get("entries") or []:
                if _key(entry.get("media") or {}) == key:
                    found = True
                    entry = patched(entry)
                entries.append(entry)

            if not found:
                entries.insert(
                    0,
                    {
                        "status": patch.status or "Planning",
                        "rating": patch.rating,
                        "note": patch.note,
                        "episode_progress": patch.episode_progress,
                        "created_at": now,
                        "updated_at": now,
                        "media": entry_media_from(media),
                    },
                )

            lists = []
            for list_ in state.get("lists") or []:
                items = []
                for item in list_.get("items") or []:
                    if item.get("entry") and _key(item.get("media") or {}) == key:
                        entry = patched(item["entry"])
                        if entry.get("rating") and not entry.get("first_rated_at"):
                            entry["first_rated_at"] = item.get("created_at")
                        item = {**item, "entry": entry}
                    items.append(item)
                lists.append({**list_, "items": items})

            state = {**state, "entries": entries, "lists": lists}
            self.storage.save(session_id, state)
            return state

    def update_list_meta(
        self,
        session_id: str,
        list_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any] | None:
        with self._lock:
            state = self.get_state(session_id)
            if state is None:
                return None
            lists = []
            for list_ in state.get("lists") or []:
                if list_.get("id") == list_id:
                    list_ = {
                        **list_,
                        "title": title if title is not None else list_.get("title"),
                        "description": description if description is not None else list_.get("description"),
                        "updated_at": _iso(self._clock()),
                    }
                lists.append(list_)
            state = {**state, "lists": lists}
            self.storage.save(session_id, state)
            return state

    def remove_list_item(self, session_id: str, list_id: str, media: Mapping[str, Any]) -> dict[str, Any] | None:
        with self._lock:
            state = self.get_state(session_id)
            if state is None:
                return None
            key = _key(media)
            lists = []
            for list_ in state.get("lists") or []:
                if list_.get("id") == list_id:
                    list_ = {
                        **list_,
                        "items": [i for i in list_.get("items") or [] if _key(i.get("media") or {}) != key],
                        "updated_at": _iso(self._clock()),
                    }
                lists.append(list_)
            state = {**state, "lists": lists}
            self.storage.save(session_id, state)
            return state

    def remove_list(self, session_id: str, list_id: str) -> dict[str, Any] | None:
        with self._lock:
            state = self.get_state(session_id)
            if state is None:
                return None
            state = {**state, "lists": [l for l in state.get("lists") or [] if l.get("id") != list_id]}
            self.storage.save(session_id, state)
            return state
