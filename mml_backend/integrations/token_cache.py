from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable

TOKEN_EXPIRY_BUFFER_SECONDS = 60.0


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: float


class TokenCache:
    """
    Holds one client-credentials access token per process.

    A cached token is reused until it is within the expiry buffer of its deadline,
    then `fetch` is called again. `fetch` returns `(token, expires_in_seconds)`.
    """

    def __init__(
        self,
        fetch: Callable[[], tuple[str, float]],
        *,
        buffer_seconds: float = TOKEN_EXPIRY_BUFFER_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetch = fetch
        self._buffer_seconds = buffer_seconds
        self._clock = clock
        self._lock = Lock()
        self._token: AccessToken | None = None

    def get(self) -> str:
        with self._lock:
            now = self._clock()
            if self._token and self._token.expires_at - self._buffer_seconds > now:
                return self._token.value
            value, expires_in = self._fetch()
            self._token = AccessToken(value=value, expires_at=now + float(expires_in))
            return value

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
