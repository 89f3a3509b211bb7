"""
Where demo sessions keep their state.

A demo session owns one JSON document. `JsonFileStorage` writes one file per
session under `DEMO_STATE_DIR`; `MemoryStorage` keeps documents in a dict and is
what tests and single-process dev servers use.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import re
import secrets
import threading
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{8,128}$")


class InvalidDemoSession(ValueError):
    pass


def validate_session_id(session_id: str | None) -> str:
    value = (session_id or "").strip()
    if not _SESSION_ID_RE.match(value):
        raise InvalidDemoSession("Invalid demo session id.")
    return value


class DemoStorage:
    """Base interface for demo state persistence."""

    def load(self, session_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def save(self, session_id: str, state: dict[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, session_id: str) -> None:
        raise NotImplementedError


class MemoryStorage(DemoStorage):
    def __init__(self) -> None:
        self._states: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load(self, session_id: str) -> dict[str, Any] | None:
        with self._lock:
            state = self._states.get(validate_session_id(session_id))
            return copy.deepcopy(state) if state is not None else None

    def save(self, session_id: str, state: dict[str, Any]) -> None:
        with self._lock:
            self._states[validate_session_id(session_id)] = copy.deepcopy(state)

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._states.pop(validate_session_id(session_id), None)


class JsonFileStorage(DemoStorage):
    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, session_id: str) -> Path:
        return self.directory / f"{validate_session_id(session_id)}.json"

    def load(self, session_id: str) -> dict[str, Any] | None:
        path = self._path(session_id)
        if not path.is_file():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Ignoring unreadable demo state {path.name}: {exc}")
            return None
        return data if isinstance(data, dict) else None

    def save(self, session_id: str, state: dict[str, Any]) -> None:
        path = self._path(session_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
        tmp = path.with_suffix(suffix)
        with tmp.open("w", encoding="utf-8", newline="\n") as f:
            json.dump(state, f, indent=2, ensure_ascii=False)
            f.write("\n")
        tmp.replace(path)

    def delete(self, session_id: str) -> None:
        self._path(session_id).unlink(missing_ok=True)


def storage_from_env() -> DemoStorage:
    directory = (os.getenv("DEMO_STATE_DIR") or "").strip()
    if directory:
        return JsonFileStorage(directory)
    return MemoryStorage()
