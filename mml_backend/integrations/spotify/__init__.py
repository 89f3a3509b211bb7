"""
Spotify Web API client (client-credentials flow).
"""

from mml_backend.integrations.spotify.client import (
    SpotifyClientError,
    fetch_album,
    fetch_new_release_covers,
    fetch_track,
    search,
    spotify_fetch_json,
)

__all__ = [
    "SpotifyClientError",
    "fetch_album",
    "fetch_new_release_covers",
    "fetch_track",
    "search",
    "spotify_fetch_json",
]
