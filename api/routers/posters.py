"""
Random poster wall for the landing page.
"""
from __future__ import annotations

from fastapi import APIRouter, Response

from api.schemas import PosterResponse
from mml_backend.posters import collect_background_posters

router = APIRouter(tags=["posters"])


@router.get("/background-posters", response_model=PosterResponse)
def background_posters(response: Response) -> dict:
    """Up to 20 shuffled cover URLs; sources that fail are skipped."""
    response.headers["Cache-Control"] = "no-store"
    return {"posters": collect_background_posters()}
