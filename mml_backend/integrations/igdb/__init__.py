"""
IGDB (Twitch) client.
"""

from mml_backend.integrations.igdb.client import (
    IgdbClientError,
    build_image_url,
    fetch_game,
    fetch_popular_covers,
    igdb_fetch,
    search_games,
)

__all__ = [
    "IgdbClientError",
    "build_image_url",
    "fetch_game",
    "fetch_popular_covers",
    "igdb_fetch",
    "search_games",
]
