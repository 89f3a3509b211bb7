from __future__ import annotations

import html
import math
import re
from datetime import datetime, timezone
from typing import Any, Iterable

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def strip_html(value: str | None) -> str | None:
    """Convert AniList-style HTML descriptions into plain text."""
    if not value:
        return None
    text = _BR_RE.sub("\n", value)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    text = _BLANK_LINES_RE.sub("\n\n", text).strip()
    return text or None


def year_from_date(value: Any) -> int | None:
    """Extract the year from a `YYYY-MM-DD` (or `YYYY`) string."""
    if not isinstance(value, str) or len(value) < 4:
        return None
    head = value[:4]
    return int(head) if head.isdigit() else None


def clean_names(values: Iterable[Any] | None) -> list[str]:
    if not values:
        return []
    return [str(v) for v in values if isinstance(v, str) and v.strip()]


def names_from(items: Any, key: str = "name") -> list[str]:
    if not isinstance(items, list):
        return []
    return clean_names(item.get(key) for item in items if isinstance(item, dict))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def year_from_timestamp(value: Any) -> int | None:
    """Year of a unix timestamp (IGDB `first_release_date`)."""
    if not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).year


def first_image_url(images: Any) -> str | None:
    if isinstance(images, list) and images and isinstance(images[0], dict):
        return images[0].get("url") or None
    return None


def artist_names(entry: Any) -> list[str]:
    if not isinstance(entry, dict):
        return []
    return names_from(entry.get("artists"))
