from __future__ import annotations

import logging
import random

import pytest

from mml_backend import posters


def _boom() -> list[str]:
    raise RuntimeError("provider down")


def test_collect_background_posters_dedupes_and_limits() -> None:
    sources = [
        ("a", lambda: ["p1", "p2", "p3"]),
        ("b", lambda: ["p3", "p4", ""]),
        ("c", lambda: ["p5"]),
    ]

    result = posters.collect_background_posters(limit=4, rng=random.Random(0), sources=sources)

    assert len(result) == 4
    assert len(set(result)) == 4
    assert set(result) <= {"p1", "p2", "p3", "p4", "p5"}


def test_failed_source_is_logged_and_skipped(caplog: pytest.LogCaptureFixture) -> None:
    sources = [("broken", _boom), ("ok", lambda: ["p1", "p2"])]

    with caplog.at_level(logging.WARNING, logger="mml_backend.posters"):
        result = posters.collect_background_posters(rng=random.Random(1), sources=sources)

    assert sorted(result) == ["p1", "p2"]
    assert "Background poster source broken failed" in caplog.text


def test_all_sources_failing_returns_empty_list() -> None:
    assert posters.collect_background_posters(rng=random.Random(2), sources=[("x", _boom)]) == []


def test_same_seed_gives_same_order() -> None:
    sources = [("a", lambda: [f"p{i}" for i in range(30)])]

    first = posters.collect_background_posters(rng=random.Random(42), sources=sources)
    second = posters.collect_background_posters(rng=random.Random(42), sources=sources)

    assert first == second
    assert len(first) == posters.POSTER_LIMIT


def test_build_poster_sources_covers_every_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {}
    monkeypatch.setattr(
        posters.tmdb, "fetch_trending", lambda kind, **_kwargs: [{"poster_path": f"/{kind}.jpg"}, {"poster_path": None}]
    )
    def fake_anilist(page):  # noqa: ANN001
        calls["page"] = page
        return ["a"]

    def fake_igdb(offset):  # noqa: ANN001
        calls["offset"] = offset
        return ["i"]

    monkeypatch.setattr(posters.anilist, "fetch_popular_covers", fake_anilist)
    monkeypatch.setattr(posters.igdb, "fetch_popular_covers", fake_igdb)
    monkeypatch.setattr(posters.spotify, "fetch_new_release_covers", lambda: ["s"])

    sources = dict(posters.build_poster_sources(random.Random(3)))

    assert set(sources) == {"tmdb:movie", "tmdb:tv", "anilist", "igdb", "spotify"}
    assert sources["tmdb:movie"]() == ["https://image.tmdb.org/t/p/w500/movie.jpg"]
    assert sources["anilist"]() == ["a"]
    assert 1 <= calls["page"] <= posters.ANILIST_MAX_PAGE
    sources["igdb"]()
    assert 0 <= calls["offset"] < posters.IGDB_MAX_OFFSET
