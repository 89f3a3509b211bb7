from __future__ import annotations

from functools import lru_cache

from supabase import Client, create_client

from mml_backend.utils.env import require_env


@lru_cache
def get_supabase_url() -> str:
    return require_env("SUPABASE_URL")


@lru_cache
def get_supabase_anon_key() -> str:
    return require_env("SUPABASE_ANON_KEY")


@lru_cache
def get_supabase_service_key() -> str:
    return require_env("SUPABASE_SERVICE_ROLE_KEY")


def create_supabase_admin_client(*, url: str | None = None, service_role_key: str | None = None) -> Client:
    """
    Create a Supabase client using the service role key (bypasses RLS).

    The API keys rows by `user_identifier` itself, so both the routers and the
    backfill script go through this client.
    """

    return create_client(url or get_supabase_url(), service_role_key or get_supabase_service_key())
