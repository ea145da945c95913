"""Shared text helpers for word counting, slugs and code fences."""

import math
import re

from autoblog.config import settings

_FENCE_START = re.compile(r"^```(?:json|markdown|md)?\s*\n?", re.IGNORECASE)
_FENCE_END = re.compile(r"\n?```\s*$")


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def slugify(text: str) -> str:
    """Build a URL slug: lowercase, hyphen-separated, at most 80 chars."""
    slug = text.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")[:80]


def reading_time(word_count: int) -> int:
    """Estimated reading time in minutes, never less than one."""
    return max(1, math.ceil(word_count / settings.READING_WORDS_PER_MINUTE))


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang and trailing ``` wrapper if present."""
    cleaned = text.strip()
    cleaned = _FENCE_START.sub("", cleaned)
    cleaned = _FENCE_END.sub("", cleaned)
    return cleaned.strip()
