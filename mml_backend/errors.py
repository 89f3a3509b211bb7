from __future__ import annotations

import requests

from mml_backend.integrations.anilist.client import AniListClientError
from mml_backend.integrations.igdb.client import IgdbClientError
from mml_backend.integrations.spotify.client import SpotifyClientError
from mml_backend.integrations.tmdb.client import TmdbClientError

PROVIDER_CLIENT_ERRORS = (
    TmdbClientError,
    AniListClientError,
    IgdbClientError,
    SpotifyClientError,
    requests.RequestException,
)


class MediaValidationError(ValueError):
    """Raised when a caller asks for an unsupported provider/type or sends a bad id."""


class ProviderError(RuntimeError):
    """
    A provider call failed. `status_code` carries the provider's HTTP status when
    it is a client error worth passing through (TMDb 404 for an unknown id).
    """

    def __init__(self, provider: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


def provider_error(provider: str, exc: Exception, *, label: str) -> ProviderError:
    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int) and 400 <= status_code < 500 and status_code != 429:
        return ProviderError(provider, str(exc), status_code=status_code)
    return ProviderError(provider, f"Unexpected error while contacting {label}.")
