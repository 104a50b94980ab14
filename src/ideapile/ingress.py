"""
Ingress module for IdeaPile.

The capture path: clean the raw text, pull out #hashtags, optionally ask the
enricher for extra tags, and hand the result to the store.
"""

import logging
import re
import secrets
import time
from typing import TYPE_CHECKING, Any, Iterable

from ideapile.config import feature_enabled

if TYPE_CHECKING:
    from ideapile.db import Database
    from ideapile.enrichment import Enricher
    from ideapile.models import Idea

logger = logging.getLogger(__name__)

HASHTAG_RE = re.compile(r"#([A-Za-z0-9_]+)")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Generate a unique id: base-36 millisecond timestamp plus a random suffix."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(11))
    return f"{_to_base36(millis)}-{suffix}"


def sanitize_text(text: str) -> str:
    """
    Normalize captured text before storage.

    Line breaks become \\n, runs of spaces and tabs collapse to one space,
    three or more consecutive line breaks collapse to two.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t\f\v]+", " ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Lowercase, strip '#', drop empties, dedupe keeping first occurrence."""
    seen: dict[str, None] = {}
    for tag in tags or []:
        clean = str(tag).strip().lstrip("#").strip().lower()
        if clean:
            seen.setdefault(clean, None)
    return list(seen)


def extract_hashtags(text: str) -> list[str]:
    """Extract #hashtags from text as normalized tags."""
    return normalize_tags(HASHTAG_RE.findall(text))


def capture(
    db: "Database",
    text: str,
    tags: Iterable[str] | None = None,
    enricher: "Enricher | None" = None,
    config: dict[str, Any] | None = None,
) -> "Idea":
    """
    Capture a new idea.

    Explicit tags come first, then hashtags found in the text, then (when
    auto-tagging is enabled and the enricher is configured) generated tags.
    The content itself is stored as written, apart from sanitization.
    """
    content = sanitize_text(text)
    merged = normalize_tags(list(tags or []) + extract_hashtags(content))

    if enricher is not None and feature_enabled("auto_tagging", config):
        if enricher.is_configured():
            # generate_tags never raises; it degrades to fallback tags
            merged = normalize_tags(merged + enricher.generate_tags(content))
        else:
            logger.info("Auto-tagging enabled but no API key configured; skipping")

    return db.create(content, merged)
