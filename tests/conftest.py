from __future__ import annotations

from typing import Any

import pytest


class FakeResponse:
    def __init__(self, *, data: Any = None, error: Any = None) -> None:
        self.data = data if data is not None else []
        self.error = error


class FakeQuery:
    """Chainable stand-in for a postgrest query builder; records every call."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self.db = db
        self.table = table
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, name: str, *args: Any, **kwargs: Any) -> "FakeQuery":
        self.calls.append((name, args, kwargs))
        return self

    def select(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        return self._record("select", *args, **kwargs)

    def insert(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        return self._record("insert", *args, **kwargs)

    def update(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        return self._record("update", *args, **kwargs)

    def upsert(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        return self._record("upsert", *args, **kwargs)

    def delete(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        return self._record("delete", *args, **kwargs)

    def eq(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        return self._record("eq", *args, **kwargs)

    def in_(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        return self._record("in_", *args, **kwargs)

    def is_(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        return self._record("is_", *args, **kwargs)

    def limit(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        return self._record("limit", *args, **kwargs)

    def order(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        return self._record("order", *args, **kwargs)

    @property
    def not_(self) -> "FakeQuery":
        return self._record("not_")

    def execute(self) -> FakeResponse:
        return self.db.next_response()

    def args_of(self, name: str) -> list[tuple]:
        return [args for call_name, args, _kwargs in self.calls if call_name == name]

    def kwargs_of(self, name: str) -> list[dict]:
        return [kwargs for call_name, _args, kwargs in self.calls if call_name == name]

    def has_call(self, name: str) -> bool:
        return any(call_name == name for call_name, _args, _kwargs in self.calls)


class FakeSupabase:
    """Serves queued responses in order; unqueued executes return no rows."""

    def __init__(self) -> None:
        self.queries: list[FakeQuery] = []
        self._responses: list[FakeResponse] = []

    def queue(self, data: Any = None, *, error: Any = None) -> "FakeSupabase":
        self._responses.append(FakeResponse(data=data, error=error))
        return self

    def next_response(self) -> FakeResponse:
        if self._responses:
            return self._responses.pop(0)
        return FakeResponse(data=[])

    def table(self, name: str) -> FakeQuery:
        query = FakeQuery(self, name)
        self.queries.append(query)
        return query


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()
