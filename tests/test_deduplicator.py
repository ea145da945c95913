"""Tests for repeated-block detection."""

from autoblog.services.deduplicator import deduplicate


def _words(tag: str, n: int) -> str:
    return " ".join(f"{tag}{i:04d}" for i in range(n))


def test_repeated_article_is_cut_at_second_copy():
    """A generation that restarts itself keeps only the first copy."""
    first = _words("alpha", 100)
    text = f"{first}\n\n{first}"

    result = deduplicate(text)

    assert result == first


def test_unique_text_is_unchanged():
    text = _words("alpha", 300)

    assert deduplicate(text) == text


def test_short_text_is_never_cut():
    """Windows below the minimum size are not searched."""
    block = _words("beta", 25)
    text = f"{block} {block}"

    assert deduplicate(text) == text


def test_repeat_late_in_text_is_kept():
    """A repeat past the position limit is treated as legitimate."""
    opening = _words("alpha", 100)
    middle = _words("gamma", 200)
    text = f"{opening} {middle} {opening[:400]}"

    assert deduplicate(text) == text
