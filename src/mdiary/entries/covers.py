"""Placeholder covers and the metadata enrichment hook.

Metadata lookups against book/film/game catalogues are not performed; the
hook always returns an empty mapping so callers can treat enrichment as
optional.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from mdiary.entries.models import Entry, MediaType

logger = logging.getLogger(__name__)

PLACEHOLDER_BASE_URL = "https://placehold.co/300x450"
PLACEHOLDER_TEXT_LENGTH = 30
DEFAULT_COLOR = "6b7280"

TYPE_COLORS: dict[MediaType, str] = {
    MediaType.VIDEOGAME: "3b82f6",
    MediaType.FILM: "ef4444",
    MediaType.SERIES: "06b6d4",
    MediaType.BOOK: "8b5cf6",
    MediaType.PAPER: "10b981",
}


def generate_placeholder_cover(title: str, media_type: MediaType | str) -> str:
    """Build a deterministic placeholder image URL for an entry."""
    try:
        color = TYPE_COLORS[MediaType.parse(media_type)]
    except ValueError:
        color = DEFAULT_COLOR
    text = quote(title[:PLACEHOLDER_TEXT_LENGTH].upper(), safe="")
    return f"{PLACEHOLDER_BASE_URL}/{color}/ffffff?text={text}"


def resolve_cover(entry: Entry) -> str:
    """The entry's cover URL, or a placeholder when it has none."""
    return entry.cover_url or generate_placeholder_cover(entry.title, entry.type)


def fetch_external_metadata(title: str, media_type: MediaType | str) -> dict[str, Any]:
    """Enrichment hook for new entries. Always returns an empty mapping."""
    logger.debug("Metadata lookup disabled for %r (%s)", title, media_type)
    return {}
