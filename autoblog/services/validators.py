"""Heading checks for generated drafts."""

import re
from typing import List

from autoblog.config import settings

_H2_LINE = re.compile(r"^## .+$", re.MULTILINE)
_NON_CONTENT_HEADING = re.compile(r"^(key takeaways?|table of contents|faq|frequently asked)", re.IGNORECASE)


def extract_h2_headings(content: str) -> List[str]:
    """Return every level-2 heading, lowercased, without the ``## `` marker."""
    headings = [line[3:].strip().lower() for line in _H2_LINE.findall(content)]
    return [h for h in headings if h]


def headings_similar(a: str, b: str) -> bool:
    """
    Cheap fuzzy match between two lowercase headings.

    Both strings must be at least HEADING_SIMILARITY_MIN_LENGTH characters and
    the longer one must contain the leading HEADING_SIMILARITY_PREFIX_RATIO of
    the shorter one.
    """
    min_length = settings.HEADING_SIMILARITY_MIN_LENGTH
    if len(a) < min_length or len(b) < min_length:
        return False
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    prefix = shorter[: int(len(shorter) * settings.HEADING_SIMILARITY_PREFIX_RATIO)]
    return prefix in longer


def find_missing_sections(content: str, required_headings: List[str]) -> List[str]:
    """
    Report required headings that are not present in content.

    Args:
        content: Markdown article body
        required_headings: Headings the outline asked for

    Returns:
        Required headings (original casing) with no matching H2
    """
    present = extract_h2_headings(content)
    missing = []
    for heading in required_headings:
        target = heading.strip().lower()
        found = any(
            target in h or h in target or headings_similar(h, target)
            for h in present
        )
        if not found:
            missing.append(heading)
    return missing


def is_content_section(heading: str) -> bool:
    """False for boilerplate headings like Key Takeaways, TOC and FAQ."""
    return not _NON_CONTENT_HEADING.match(heading.strip())


def content_sections(headings: List[str]) -> List[str]:
    """Filter outline headings down to the body sections."""
    return [h for h in headings if is_content_section(h)]
