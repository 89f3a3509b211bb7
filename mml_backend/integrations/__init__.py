"""
External provider integrations (TMDb, AniList, IGDB, Spotify).

Each provider lives in its own subpackage and exposes plain functions that take
an optional `requests.Session` and raise a provider-specific `RuntimeError`.
"""
