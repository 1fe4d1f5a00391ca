"""Mapping of raw Finnhub news items onto ``News`` columns."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def parse_published_at(epoch: Any) -> datetime | None:
    """Convert Finnhub's epoch-seconds ``datetime`` field to aware UTC."""
    if epoch in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(epoch), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def article_fields(article: dict[str, Any]) -> dict[str, Any] | None:
    """Return store kwargs for ``article``, or ``None`` if it is unusable.

    An item needs a numeric ``id`` and a ``url``; everything else is optional.
    """
    try:
        finnhub_id = int(article.get("id"))
    except (TypeError, ValueError):
        return None
    url = (article.get("url") or "").strip()
    if not url:
        return None

    return {
        "finnhub_id": finnhub_id,
        "category": article.get("category") or None,
        "headline": article.get("headline") or "",
        "summary": article.get("summary") or None,
        "url": url,
        "image": article.get("image") or None,
        "source": article.get("source") or None,
        "published_at": parse_published_at(article.get("datetime")),
    }
