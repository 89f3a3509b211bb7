"""
Domain models shared across the API, scripts, and demo mode.
"""

from mml_backend.models.media import (
    CastMember,
    EntryPatch,
    Media,
    MediaPayload,
    SearchResultItem,
)

__all__ = [
    "CastMember",
    "EntryPatch",
    "Media",
    "MediaPayload",
    "SearchResultItem",
]
