"""
MyMediaList API - FastAPI application.

Provides endpoints for:
- Searching TMDb, AniList, IGDB and Spotify
- Media detail pages
- Saving entries (status, rating, notes, progress) and dashboard stats
- User lists
- Demo mode sessions
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import demo, entries, lists, media, posters, search

logger = logging.getLogger(__name__)


def get_cors_origins() -> list[str]:
    """
    Get CORS allowed origins from environment.
    Set CORS_ALLOW_ORIGINS as comma-separated list of origins.
    Example: CORS_ALLOW_ORIGINS=http://localhost:3000,https://mymedialist.app
    """
    origins_str = os.getenv("CORS_ALLOW_ORIGINS", "")
    if not origins_str:
        return []
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up MyMediaList API...")
    yield
    logger.info("Shutting down MyMediaList API...")


app = FastAPI(
    title="MyMediaList API",
    description="Backend API for MyMediaList - track movies, series, anime, games and music",
    version="0.1.0",
    lifespan=lifespan,
)

# Credentials are only allowed with an explicit origin list.
cors_origins = get_cors_origins()
allow_credentials = len(cors_origins) > 0

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins if cors_origins else ["*"],
    allow_credentials=allow_credentials,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(search.router, prefix="/api/v1")
app.include_router(media.router, prefix="/api/v1")
app.include_router(entries.router, prefix="/api/v1")
app.include_router(lists.router, prefix="/api/v1")
app.include_router(posters.router, prefix="/api/v1")
app.include_router(demo.router, prefix="/api/v1")


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "mymedialist-backend"}


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}
