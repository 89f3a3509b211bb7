"""
AniList GraphQL client.
"""

from mml_backend.integrations.anilist.client import (
    AniListClientError,
    fetch_anime,
    fetch_popular_covers,
    search_anime,
)

__all__ = [
    "AniListClientError",
    "fetch_anime",
    "fetch_popular_covers",
    "search_anime",
]
