from __future__ import annotations

import logging

import pytest

from mml_backend.demo import InvalidDemoSession, JsonFileStorage, MemoryStorage, storage_from_env
from mml_backend.demo.storage import validate_session_id

SESSION = "abcdef12-3456"


@pytest.mark.parametrize("value", ["", "short", "../../etc/passwd", "has space in it", "x" * 129, None])
def test_invalid_session_ids(value) -> None:  # noqa: ANN001
    with pytest.raises(InvalidDemoSession):
        validate_session_id(value)


def test_valid_session_id_is_trimmed() -> None:
    assert validate_session_id(f"  {SESSION} ") == SESSION


def test_memory_storage_returns_copies() -> None:
    storage = MemoryStorage()
    state = {"version": 1, "entries": []}
    storage.save(SESSION, state)

    state["entries"].append("mutated")
    loaded = storage.load(SESSION)
    loaded["entries"].append("also mutated")

    assert storage.load(SESSION) == {"version": 1, "entries": []}
    storage.delete(SESSION)
    assert storage.load(SESSION) is None


def test_json_file_storage_round_trip(tmp_path) -> None:  # noqa: ANN001
    storage = JsonFileStorage(tmp_path / "demo")

    assert storage.load(SESSION) is None
    storage.save(SESSION, {"version": 1, "seed": 42, "entries": [{"note": "Café"}]})

    path = tmp_path / "demo" / f"{SESSION}.json"
    assert path.is_file()
    assert "Café" in path.read_text(encoding="utf-8")
    assert list((tmp_path / "demo").glob("*.tmp")) == []
    assert storage.load(SESSION)["seed"] == 42

    storage.delete(SESSION)
    storage.delete(SESSION)
    assert not path.exists()


def test_json_file_storage_ignores_corrupt_files(tmp_path, caplog: pytest.LogCaptureFixture) -> None:  # noqa: ANN001
    (tmp_path / f"{SESSION}.json").write_text("{not json", encoding="utf-8")
    storage = JsonFileStorage(tmp_path)

    with caplog.at_level(logging.WARNING, logger="mml_backend.demo.storage"):
        assert storage.load(SESSION) is None
    assert "Ignoring unreadable demo state" in caplog.text


def test_json_file_storage_rejects_path_tricks(tmp_path) -> None:  # noqa: ANN001
    with pytest.raises(InvalidDemoSession):
        JsonFileStorage(tmp_path).save("../outside", {})


def test_storage_from_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:  # noqa: ANN001
    monkeypatch.delenv("DEMO_STATE_DIR", raising=False)
    assert isinstance(storage_from_env(), MemoryStorage)

    monkeypatch.setenv("DEMO_STATE_DIR", str(tmp_path))
    storage = storage_from_env()
    assert isinstance(storage, JsonFileStorage)
    assert storage.directory == tmp_path
