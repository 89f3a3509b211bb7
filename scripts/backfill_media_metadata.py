#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Mapping

import requests
from supabase import Client

from mml_backend.enrichment import build_missing_patch, resolve_media_metadata
from mml_backend.integrations.tmdb.client import resolve_api_key
from mml_backend.models.media import MediaPayload
from mml_backend.repositories import raise_for_supabase_error
from mml_backend.repositories.media_items import update_media_row
from mml_backend.utils.concurrency import map_settled
from scripts._common import load_env_and_db

BACKFILL_FIELDS = "id,source,source_id,type,title,year,duration_minutes,genres,directors,writers,cast,metadata"
BACKFILL_COLUMNS = ("year", "duration_minutes", "genres", "directors", "writers", "cast", "metadata")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="backfill_media_metadata",
        description="Fill missing TMDb metadata (year, runtime, genres, credits) on media_items rows.",
    )
    parser.add_argument("--limit", type=int, default=None, help="Optional cap on number of rows to scan.")
    parser.add_argument("--dry-run", action="store_true", help="Run without writing to Supabase.")
    parser.add_argument("--concurrency", type=int, default=5, help="Parallel TMDb lookups (default: 5).")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def needs_backfill(row: Mapping[str, Any]) -> bool:
    for column in BACKFILL_COLUMNS:
        value = row.get(column)
        if value is None or (isinstance(value, list) and not value):
            return True
    return False


def payload_from_row(row: Mapping[str, Any]) -> MediaPayload:
    return MediaPayload(
        provider=str(row.get("source")),
        provider_id=str(row.get("source_id")),
        type=str(row.get("type")),
        title=str(row.get("title") or ""),
        year=row.get("year"),
        duration_minutes=row.get("duration_minutes"),
        genres=row.get("genres"),
        directors=row.get("directors"),
        writers=row.get("writers"),
        cast=row.get("cast"),
    )


def _fetch_candidate_rows(db: Client, limit: int | None) -> list[dict[str, Any]]:
    query = (
        db.table("media_items")
        .select(BACKFILL_FIELDS)
        .eq("source", "tmdb")
        .in_("type", ["movie", "tv"])
        .order("id")
    )
    if limit is not None:
        query = query.limit(max(0, int(limit)))
    response = query.execute()
    raise_for_supabase_error(response, "listing media items")
    data = response.data or []
    return [row for row in data if isinstance(row, dict)]


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    db = load_env_and_db()
    if not resolve_api_key():
        raise RuntimeError("TMDB_API_KEY must be set to backfill media metadata.")

    rows = _fetch_candidate_rows(db, args.limit)
    candidates = [row for row in rows if needs_backfill(row)]
    if args.verbose:
        print(f"backfill_media_metadata: scanned={len(rows)} candidates={len(candidates)}")

    session = requests.Session()
    results = map_settled(
        lambda row: resolve_media_metadata(payload_from_row(row), session=session),
        candidates,
        concurrency=args.concurrency,
    )

    patched = 0
    unchanged = 0
    errors = 0
    for row, result in zip(candidates, results):
        if not result.ok:
            errors += 1
            print(f"ERROR: resolve failed media_id={row.get('id')} error={result.error}")
            continue
        if result.value.metadata is None:
            errors += 1
            print(f"ERROR: TMDb lookup failed media_id={row.get('id')} tmdb_id={row.get('source_id')}")
            continue

        patch = build_missing_patch(row, result.value)
        if not patch:
            unchanged += 1
            continue

        patched += 1
        if args.verbose:
            print(f"PATCH media_id={row.get('id')} tmdb_id={row.get('source_id')} fields={','.join(sorted(patch))}")
        if args.dry_run:
            continue
        update_media_row(db, row["id"], patch)

    print(
        "backfill_media_metadata: "
        f"candidates={len(candidates)} patched={patched} unchanged={unchanged} errors={errors}"
        + (" (dry run)" if args.dry_run else "")
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
