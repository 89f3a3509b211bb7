"""
Database helpers for the MyMediaList API and maintenance scripts.
"""

from mml_backend.db.supabase import create_supabase_admin_client

__all__ = [
    "create_supabase_admin_client",
]
