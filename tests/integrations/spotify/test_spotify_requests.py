from __future__ import annotations

from typing import Any

import pytest

from mml_backend.integrations.spotify import client as spotify
from mml_backend.integrations.token_cache import TokenCache


class _FakeResponse:
    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        return self._payload


class _FakeSession:
    def __init__(self, responses: list[_FakeResponse]) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, *, params=None, headers=None, timeout=None):  # noqa: ANN001
        self.calls.append({"url": url, "params": params, "headers": headers})
        return self._responses.pop(0)

    def post(self, url: str, *, data=None, auth=None, headers=None, timeout=None):  # noqa: ANN001
        self.calls.append({"url": url, "data": data, "auth": auth})
        return self._responses.pop(0)


@pytest.fixture
def tokens(monkeypatch: pytest.MonkeyPatch) -> TokenCache:
    cache = TokenCache(lambda: ("spotify-token", 3600))
    monkeypatch.setattr(spotify, "_token_cache", cache)
    return cache


def test_search_tracks_returns_items(tokens: TokenCache) -> None:
    session = _FakeSession([_FakeResponse(200, {"tracks": {"items": [{"id": "t1"}]}})])

    assert spotify.search("track", "daft punk", session=session) == [{"id": "t1"}]
    call = session.calls[0]
    assert call["url"] == "https://api.spotify.com/v1/search"
    assert call["params"] == {"q": "daft punk", "type": "track", "limit": 20}
    assert call["headers"]["Authorization"] == "Bearer spotify-token"


def test_error_message_from_payload(tokens: TokenCache) -> None:
    session = _FakeSession([_FakeResponse(400, {"error": {"status": 400, "message": "invalid id"}})])

    with pytest.raises(spotify.SpotifyClientError) as excinfo:
        spotify.fetch_track("nope", session=session)

    assert str(excinfo.value) == "invalid id"
    assert excinfo.value.status_code == 400


def test_new_release_covers(tokens: TokenCache) -> None:
    payload = {"albums": {"items": [{"images": [{"url": "a.jpg"}, {"url": "small.jpg"}]}, {"images": []}]}}
    session = _FakeSession([_FakeResponse(200, payload)])

    assert spotify.fetch_new_release_covers(session=session) == ["a.jpg"]


def test_token_request_uses_basic_auth(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "id")
    monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "secret")
    session = _FakeSession([_FakeResponse(200, {"access_token": "abc", "expires_in": 3600})])

    assert spotify._fetch_access_token(session) == ("abc", 3600.0)
    assert session.calls[0]["auth"] == ("id", "secret")
    assert session.calls[0]["data"] == {"grant_type": "client_credentials"}


def test_unsupported_search_kind(tokens: TokenCache) -> None:
    with pytest.raises(ValueError):
        spotify.search("artist", "x", session=_FakeSession([]))
