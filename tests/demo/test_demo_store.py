from __future__ import annotations

from datetime import datetime, timezone

import pytest

from mml_backend.demo import DEMO_LIST_DEFINITIONS, DemoStore, MemoryStorage, build_rated_items
from mml_backend.demo.store import DEMO_PLANS, DEMO_VERSION, fallback_media
from mml_backend.errors import ProviderError
from mml_backend.models.media import EntryPatch, Media, SearchResultItem

SESSION = "session-abc123"
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _provider_for(type_: str) -> str:
    return {"movie": "tmdb", "tv": "tmdb", "anime": "anilist", "game": "igdb"}.get(type_, "spotify")


def fake_search(type_: str, query: str) -> list[SearchResultItem]:
    if query == "hades":
        raise ProviderError("igdb", "Unexpected error while contacting IGDB.")
    return [
        SearchResultItem(
            id=f"{type_}-{query}-{i}",
            title=f"{query.title()} {i}",
            subtitle=type_,
            type=type_,
            provider=_provider_for(type_),
            provider_id=f"{query.replace(' ', '_')}_{i}",
            tags=["Drama"],
            cover_url=f"https://img.example/{query}/{i}.jpg" if i < 2 else None,
            duration_seconds=5400 if type_ == "movie" else None,
        )
        for i in range(3)
    ]


def fake_detail(provider: str, provider_id: str, type_: str) -> Media | None:
    if type_ == "anime":
        return Media(
            id=f"anilist-anime-{provider_id}",
            type="anime",
            title=f"Anime {provider_id}",
            provider=provider,
            provider_id=provider_id,
            episode_count=24,
        )
    return None


@pytest.fixture
def store() -> DemoStore:
    return DemoStore(MemoryStorage(), search=fake_search, fetch_detail=fake_detail, clock=lambda: NOW)


def _media(entry: dict) -> dict:
    media = entry["media"]
    return {"provider": media["provider"], "provider_id": media["provider_id"], "type": media["type"]}


def test_create_state_is_deterministic_for_a_seed(store: DemoStore) -> None:
    first = store.create_state(seed=1234)
    second = store.create_state(seed=1234)

    assert first == second
    assert first["version"] == DEMO_VERSION
    assert first["seed"] == 1234
    assert len(first["entries"]) == sum(count for _type, count in DEMO_PLANS)


def test_create_state_shapes_entries(store: DemoStore) -> None:
    state = store.create_state(seed=7)
    entries = state["entries"]

    assert entries[0]["rating"] == 10
    assert entries[0]["note"] == "Saved to demo list."
    assert entries[0]["created_at"] == NOW.isoformat()
    assert entries[1]["created_at"] == datetime(2024, 6, 14, 12, 0, tzinfo=timezone.utc).isoformat()

    for entry in entries:
        if entry["rating"] is not None:
            assert 6 <= entry["rating"] <= 10
        if entry["status"] in ("Planning",) and entry is not entries[0]:
            assert entry["rating"] is None
        if entry["episode_progress"] is not None:
            assert entry["status"] == "Watching"
            upper = entry["media"]["episode_count"] or 12
            assert 1 <= entry["episode_progress"] <= upper

    anime = [e for e in entries if e["media"]["type"] == "anime"]
    assert anime and all(e["media"]["episode_count"] == 24 for e in anime)

    movies = [e for e in entries if e["media"]["type"] == "movie"]
    assert all(e["media"]["duration_minutes"] == 90 for e in movies)

    shows = [e for e in entries if e["media"]["type"] == "tv"]
    assert shows and all(e["media"]["poster_url"] for e in shows)


def test_create_state_builds_one_list_per_definition(store: DemoStore) -> None:
    state = store.create_state(seed=99)

    assert [l["id"] for l in state["lists"]] == [d.id for d in DEMO_LIST_DEFINITIONS]
    by_id = {l["id"]: l for l in state["lists"]}
    assert len(by_id["demo-movies"]["items"]) == 10
    assert len(by_id["demo-music"]["items"]) == 6
    first_movie = by_id["demo-movies"]["items"][0]
    assert first_movie["id"] == "demo-movies-0"
    assert first_movie["media"]["id"].startswith("tmdb-")


def test_failed_searches_do_not_break_seeding(store: DemoStore) -> None:
    state = store.create_state(seed=5)

    games = [e for e in state["entries"] if e["media"]["type"] == "game"]
    assert len(games) == 6
    assert not any("Hades" in e["media"]["title"] for e in games)


def test_ensure_state_persists_and_reuses(store: DemoStore) -> None:
    assert store.get_state(SESSION) is None

    created = store.ensure_state(SESSION, seed=11)
    again = store.ensure_state(SESSION, seed=999)

    assert again == created
    assert store.get_state(SESSION)["seed"] == 11

    store.reset(SESSION)
    assert store.get_state(SESSION) is None


def test_state_from_another_version_is_ignored(store: DemoStore) -> None:
    store.storage.save(SESSION, {"version": DEMO_VERSION + 1, "entries": [], "lists": []})

    assert store.get_state(SESSION) is None


def test_update_entry_patches_entry_and_list_item(store: DemoStore) -> None:
    state = store.ensure_state(SESSION, seed=21)
    target = next(e for e in state["entries"] if e["media"]["type"] == "game")
    later = datetime(2024, 6, 16, tzinfo=timezone.utc)
    store._clock = lambda: later

    updated = store.update_entry(
        SESSION, _media(target), EntryPatch.from_mapping({"status": "Dropped", "rating": None, "note": "Too hard"})
    )

    entry = store.get_entry_by_media(SESSION, _media(target))
    assert entry["status"] == "Dropped"
    assert entry["rating"] is None
    assert entry["note"] == "Too hard"
    assert entry["updated_at"] == later.isoformat()
    assert entry["episode_progress"] == target["episode_progress"]

    games = next(l for l in updated["lists"] if l["id"] == "demo-games")
    item = next(i for i in games["items"] if i["media"]["provider_id"] == target["media"]["provider_id"])
    assert item["entry"]["status"] == "Dropped"
    assert item["entry"]["note"] == "Too hard"


def test_update_entry_creates_missing_entry_on_top(store: DemoStore) -> None:
    store.ensure_state(SESSION, seed=3)
    media = {
        "provider": "tmdb",
        "provider_id": "27205",
        "type": "movie",
        "title": "Inception",
        "poster_url": None,
        "genres": ["Action"],
    }

    state = store.update_entry(SESSION, media, EntryPatch.from_mapping({"rating": 9}))

    top = state["entries"][0]
    assert top["status"] == "Planning"
    assert top["rating"] == 9
    assert top["media"]["title"] == "Inception"
    assert top["created_at"] == NOW.isoformat()


def test_mutations_without_state_return_none(store: DemoStore) -> None:
    media = {"provider": "tmdb", "provider_id": "1", "type": "movie"}

    assert store.update_entry(SESSION, media, EntryPatch()) is None
    assert store.update_list_meta(SESSION, "demo-movies", title="x") is None
    assert store.remove_list_item(SESSION, "demo-movies", media) is None
    assert store.remove_list(SESSION, "demo-movies") is None
    assert store.get_entry_by_media(SESSION, media) is None


def test_list_operations(store: DemoStore) -> None:
    state = store.ensure_state(SESSION, seed=8)
    movies = next(l for l in state["lists"] if l["id"] == "demo-movies")
    first = movies["items"][0]["media"]

    state = store.update_list_meta(SESSION, "demo-movies", title="Favorites")
    movies = next(l for l in state["lists"] if l["id"] == "demo-movies")
    assert movies["title"] == "Favorites"
    assert movies["description"] == DEMO_LIST_DEFINITIONS[0].description

    state = store.remove_list_item(SESSION, "demo-movies", first)
    movies = next(l for l in state["lists"] if l["id"] == "demo-movies")
    assert len(movies["items"]) == 9
    assert all(i["media"]["provider_id"] != first["provider_id"] for i in movies["items"])

    state = store.remove_list(SESSION, "demo-anime")
    assert "demo-anime" not in [l["id"] for l in state["lists"]]


def test_normalize_state_swaps_replacement_titles(store: DemoStore) -> None:
    bad = {"title": "Container Interstellar", "provider": "tmdb", "provider_id": "1", "type": "movie"}
    state = {
        "version": DEMO_VERSION,
        "seed": 1,
        "entries": [{"status": "Completed", "rating": 8, "media": dict(bad)}],
        "lists": [{"id": "demo-movies", "items": [{"id": "demo-movies-0", "media": {"id": "tmdb-1", **bad}}]}],
    }

    normalized = store.normalize_state(state)

    assert normalized["entries"][0]["media"]["title"] == "Avengers: Infinity War"
    assert normalized["entries"][0]["media"]["provider_id"] == "299536"
    assert normalized["lists"][0]["items"][0]["media"]["id"] == "tmdb-299536"


def test_ensure_state_keeps_updates_made_during_replacement_lookup() -> None:
    bad = {"title": "Container Interstellar", "provider": "tmdb", "provider_id": "1", "type": "movie"}
    added = {"provider": "tmdb", "provider_id": "999", "type": "movie", "title": "Heat", "genres": []}
    store: DemoStore

    def detail_with_concurrent_patch(provider: str, provider_id: str, type_: str) -> Media | None:
        store.update_entry(SESSION, added, EntryPatch.from_mapping({"status": "Completed"}))
        return None

    store = DemoStore(
        MemoryStorage(), search=fake_search, fetch_detail=detail_with_concurrent_patch, clock=lambda: NOW
    )
    store.storage.save(
        SESSION,
        {"version": DEMO_VERSION, "seed": 1, "entries": [{"status": "Completed", "media": dict(bad)}], "lists": []},
    )

    state = store.ensure_state(SESSION)

    assert [e["media"]["provider_id"] for e in state["entries"]] == ["999", "299536"]
    assert store.get_state(SESSION) == state


def test_ensure_state_does_not_overwrite_state_saved_while_seeding() -> None:
    existing = {"version": DEMO_VERSION, "seed": 5, "entries": [], "lists": []}
    store: DemoStore

    def search_then_save(type_: str, query: str) -> list[SearchResultItem]:
        if store.storage.load(SESSION) is None:
            store.storage.save(SESSION, existing)
        return fake_search(type_, query)

    store = DemoStore(MemoryStorage(), search=search_then_save, fetch_detail=fake_detail, clock=lambda: NOW)

    state = store.ensure_state(SESSION, seed=42)

    assert state["seed"] == 5
    assert store.get_state(SESSION)["seed"] == 5


def test_build_rated_items_skips_unrated() -> None:
    entries = [
        {"status": "Completed", "rating": 8, "created_at": "c1", "updated_at": "u1", "media": {"title": "A"}},
        {"status": "Planning", "rating": None, "media": {"title": "B"}},
    ]

    items = build_rated_items(entries)

    assert [i["media"]["title"] for i in items] == ["A"]
    assert items[0]["first_rated_at"] == "c1"


def test_fallback_media_uses_search_item() -> None:
    item = SearchResultItem(
        id="tmdb-1",
        title="Dune",
        subtitle="2021",
        type="movie",
        provider="tmdb",
        provider_id="1",
        tags=["Sci-Fi"],
        cover_url="dune.jpg",
        duration_seconds=20,
        year=2021,
    )

    media = fallback_media(item)

    assert media.id == "tmdb-1"
    assert media.poster_url == "dune.jpg"
    assert media.duration_minutes == 1
    assert media.genres == ["Sci-Fi"]
