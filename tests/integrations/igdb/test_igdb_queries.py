from __future__ import annotations

from typing import Any

import pytest

from mml_backend.integrations.igdb import client as igdb
from mml_backend.integrations.token_cache import TokenCache


class _FakeResponse:
    def __init__(self, status_code: int, payload: Any, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        return self._payload


class _FakeSession:
    def __init__(self, responses: list[_FakeResponse]) -> None:
        self._responses = list(responses)
        self.posts: list[dict[str, Any]] = []

    def post(self, url: str, *, data=None, params=None, headers=None, timeout=None):  # noqa: ANN001
        self.posts.append({"url": url, "data": data, "params": params, "headers": headers})
        return self._responses.pop(0)


@pytest.fixture(autouse=True)
def _igdb_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IGDB_CLIENT_ID", "client-id")
    monkeypatch.setenv("IGDB_CLIENT_SECRET", "secret")


def test_search_games_escapes_query_and_sends_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(igdb, "_token_cache", TokenCache(lambda: ("tok", 3600)))
    session = _FakeSession([_FakeResponse(200, [{"id": 1942, "name": "The Witcher 3"}])])

    rows = igdb.search_games('say "hi"', session=session)

    assert rows == [{"id": 1942, "name": "The Witcher 3"}]
    post = session.posts[0]
    assert post["url"] == "https://api.igdb.com/v4/games"
    assert post["data"].decode("utf-8").startswith('search "say \\"hi\\""; fields ')
    assert post["headers"]["Client-ID"] == "client-id"
    assert post["headers"]["Authorization"] == "Bearer tok"


def test_igdb_error_status() -> None:
    session = _FakeSession([_FakeResponse(401, None, text="unauthorized")])

    with pytest.raises(igdb.IgdbClientError) as excinfo:
        igdb.igdb_fetch("games", "fields name;", session=session, token_cache=TokenCache(lambda: ("t", 3600)))

    assert excinfo.value.status_code == 401


def test_access_token_request_uses_client_credentials() -> None:
    session = _FakeSession([_FakeResponse(200, {"access_token": "abc", "expires_in": 5000})])

    assert igdb._fetch_access_token(session) == ("abc", 5000.0)
    assert session.posts[0]["params"]["grant_type"] == "client_credentials"


def test_missing_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("IGDB_CLIENT_SECRET")
    with pytest.raises(igdb.IgdbClientError, match="IGDB_CLIENT_SECRET"):
        igdb._fetch_access_token(_FakeSession([]))


def test_build_image_url() -> None:
    assert igdb.build_image_url("co1wyy") == "https://images.igdb.com/igdb/image/upload/t_cover_big/co1wyy.jpg"
    assert igdb.build_image_url(None) is None
