"""
Repository layer for DB access patterns.
"""

from typing import Any


class RepositoryError(RuntimeError):
    pass


def raise_for_supabase_error(response: Any, context: str) -> None:
    if hasattr(response, "error") and response.error:
        raise RepositoryError(f"Supabase error during {context}: {response.error}")


def first_row(response: Any) -> dict[str, Any] | None:
    data = response.data or []
    if isinstance(data, list):
        return data[0] if data else None
    if isinstance(data, dict):
        return data
    return None


__all__ = [
    "RepositoryError",
    "first_row",
    "raise_for_supabase_error",
]
