"""
Demo mode: unauthenticated, per-session sample data kept outside the database.
"""

from mml_backend.demo.storage import (
    DemoStorage,
    InvalidDemoSession,
    JsonFileStorage,
    MemoryStorage,
    storage_from_env,
)
from mml_backend.demo.store import DEMO_LIST_DEFINITIONS, DemoStore, build_rated_items

__all__ = [
    "DEMO_LIST_DEFINITIONS",
    "DemoStorage",
    "DemoStore",
    "InvalidDemoSession",
    "JsonFileStorage",
    "MemoryStorage",
    "build_rated_items",
    "storage_from_env",
]
