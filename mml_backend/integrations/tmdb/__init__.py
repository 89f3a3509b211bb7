"""
TMDb integration clients.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mml_backend.integrations.tmdb.client import (
        TmdbClientError,
        fetch_details,
        fetch_genre_list,
        fetch_trending,
        search,
    )

__all__ = [
    "TmdbClientError",
    "fetch_details",
    "fetch_genre_list",
    "fetch_trending",
    "search",
]


def __getattr__(name: str):
    if name in __all__:
        from mml_backend.integrations.tmdb import client

        return getattr(client, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
