"""Detection and truncation of self-repeating generations."""

import logging

from autoblog.config import settings

logger = logging.getLogger(__name__)


def deduplicate(text: str) -> str:
    """
    Truncate text at the start of a repeated block.

    A runaway generation sometimes restarts the article and writes it again.
    Starting with a window of DEDUP_WINDOW_RATIO of the text and shrinking by
    DEDUP_WINDOW_STEP down to DEDUP_MIN_WINDOW characters, the prefix of that
    window is searched for again after the window. A match inside the first
    DEDUP_MAX_POSITION_RATIO of the text cuts the text there.

    Args:
        text: Generated text

    Returns:
        The first clean copy, or the original text when no repeat is found
    """
    full_text = text.strip()
    length = len(full_text)
    window = int(length * settings.DEDUP_WINDOW_RATIO)
    max_position = length * settings.DEDUP_MAX_POSITION_RATIO

    while window >= settings.DEDUP_MIN_WINDOW:
        prefix = full_text[:window].strip()
        second = full_text.find(prefix, window)
        if 0 < second < max_position:
            logger.warning(
                f"Repeated block detected at char {second} (window {window}), truncating {length} -> {second}"
            )
            return full_text[:second].strip()
        window -= settings.DEDUP_WINDOW_STEP

    return text
