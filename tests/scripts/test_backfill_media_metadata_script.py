from __future__ import annotations

import pytest

from mml_backend.enrichment import ResolvedMetadata
from scripts import backfill_media_metadata as script

COMPLETE = {
    "id": "m-complete",
    "source": "tmdb",
    "source_id": "1",
    "type": "movie",
    "title": "Complete",
    "year": 2000,
    "duration_minutes": 100,
    "genres": ["Drama"],
    "directors": ["A"],
    "writers": ["B"],
    "cast": ["C"],
    "metadata": {"provider": "tmdb"},
}
PARTIAL = {**COMPLETE, "id": "m-partial", "source_id": "2", "title": "Partial", "duration_minutes": None, "cast": []}
BROKEN = {**COMPLETE, "id": "m-broken", "source_id": "3", "title": "Broken", "year": None}
SAME = {**COMPLETE, "id": "m-same", "source_id": "4", "title": "Same", "writers": None}
DEGRADED = {**COMPLETE, "id": "m-degraded", "source_id": "5", "title": "Degraded", "genres": None}
BLOB = {"provider": "tmdb"}


@pytest.fixture
def run(fake_db, monkeypatch: pytest.MonkeyPatch):  # noqa: ANN001
    def fake_resolve(media, **_kwargs):  # noqa: ANN001, ANN003
        if media.title == "Broken":
            raise RuntimeError("tmdb exploded")
        if media.title == "Same":
            return ResolvedMetadata(year=2000, metadata=BLOB)
        if media.title == "Degraded":
            return ResolvedMetadata(year=2000)
        return ResolvedMetadata(duration_minutes=120, cast=["Keanu Reeves"], metadata=BLOB)

    monkeypatch.setattr(script, "load_env_and_db", lambda: fake_db)
    monkeypatch.setattr(script, "resolve_api_key", lambda: "key")
    monkeypatch.setattr(script, "resolve_media_metadata", fake_resolve)
    fake_db.queue([COMPLETE, PARTIAL, BROKEN, SAME, DEGRADED])
    return fake_db


def test_needs_backfill() -> None:
    assert script.needs_backfill(COMPLETE) is False
    assert script.needs_backfill(PARTIAL) is True


def test_payload_from_row() -> None:
    payload = script.payload_from_row(PARTIAL)
    assert payload.provider == "tmdb"
    assert payload.provider_id == "2"
    assert payload.cast == []


def test_backfill_patches_missing_columns(run, capsys: pytest.CaptureFixture[str]) -> None:  # noqa: ANN001
    assert script.main(["--limit", "10"]) == 0

    select, update = run.queries
    assert select.args_of("in_") == [("type", ["movie", "tv"])]
    assert select.args_of("limit") == [(10,)]
    assert update.args_of("update") == [({"duration_minutes": 120, "cast": ["Keanu Reeves"]},)]
    assert update.args_of("eq") == [("id", "m-partial")]

    out = capsys.readouterr().out
    assert "ERROR: resolve failed media_id=m-broken" in out
    assert "ERROR: TMDb lookup failed media_id=m-degraded tmdb_id=5" in out
    assert "candidates=4 patched=1 unchanged=1 errors=2" in out


def test_dry_run_does_not_write(run, capsys: pytest.CaptureFixture[str]) -> None:  # noqa: ANN001
    script.main(["--dry-run"])

    assert len(run.queries) == 1
    assert "(dry run)" in capsys.readouterr().out


def test_missing_api_key_aborts(run, monkeypatch: pytest.MonkeyPatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(script, "resolve_api_key", lambda: None)

    with pytest.raises(RuntimeError, match="TMDB_API_KEY"):
        script.main([])
