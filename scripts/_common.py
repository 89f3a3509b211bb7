from __future__ import annotations

from supabase import Client

from mml_backend.db.supabase import create_supabase_admin_client
from mml_backend.utils.env import load_env


def load_env_and_db() -> Client:
    load_env()
    return create_supabase_admin_client()
