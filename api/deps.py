"""
Dependency injection for the Supabase client and other shared resources.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException
from supabase import Client

from mml_backend.db.supabase import create_supabase_admin_client
from mml_backend.demo import DemoStore, storage_from_env
from mml_backend.errors import MediaValidationError, ProviderError
from mml_backend.integrations.tmdb.cache import TmdbMetadataCache, get_default_cache
from mml_backend.repositories import RepositoryError
from mml_backend.utils.env import load_env

load_env()

logger = logging.getLogger(__name__)


def get_supabase_admin_client() -> Client:
    """
    Returns a Supabase client using the service role key (bypasses RLS).
    Rows are scoped by `user_identifier` in every query.
    """
    return create_supabase_admin_client()


def get_tmdb_cache() -> TmdbMetadataCache:
    return get_default_cache()


@lru_cache
def get_demo_store() -> DemoStore:
    return DemoStore(storage_from_env())


# Type aliases for dependency injection
SupabaseAdminClient = Annotated[Client, Depends(get_supabase_admin_client)]
TmdbCache = Annotated[TmdbMetadataCache, Depends(get_tmdb_cache)]
DemoStoreDep = Annotated[DemoStore, Depends(get_demo_store)]


def repository_http_error(exc: RepositoryError, context: str) -> HTTPException:
    """
    Translate a repository failure into a 502.

    The Supabase message is logged but not returned to the client.
    """
    logger.error(f"Supabase error during {context}: {exc}")
    return HTTPException(status_code=502, detail=f"Database error during {context}")


def provider_http_error(exc: ProviderError) -> HTTPException:
    """
    Provider client errors (unknown id, bad query) keep their 4xx status;
    everything else is a 502.
    """
    status_code = exc.status_code or 502
    if status_code >= 500:
        logger.error(f"{exc.provider} request failed: {exc}")
    else:
        logger.warning(f"{exc.provider} rejected request ({status_code}): {exc}")
    return HTTPException(status_code=status_code, detail=str(exc))


def validation_http_error(exc: MediaValidationError | ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))
