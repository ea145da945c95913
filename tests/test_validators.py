"""Tests for draft section validators."""

from autoblog.services.validators import (
    content_sections,
    extract_h2_headings,
    find_missing_sections,
    headings_similar,
)


def test_extract_h2_headings():
    content = "## First Part\ntext\n### Sub\n## Second Part\n#### deep"
    assert extract_h2_headings(content) == ["first part", "second part"]


def test_find_missing_sections_exact_and_substring():
    content = "## Choosing Trail Running Shoes\nbody\n## Fit and Sizing Explained\nbody"
    required = ["Choosing Trail Running Shoes", "Fit and Sizing", "Caring for Your Shoes"]

    assert find_missing_sections(content, required) == ["Caring for Your Shoes"]


def test_find_missing_sections_fuzzy_prefix():
    """A heading the model lightly reworded still counts as present."""
    content = "## Common mistakes beginners make on trails\nbody"
    required = ["Common mistakes beginners make"]

    assert find_missing_sections(content, required) == []


def test_empty_content_misses_everything():
    required = ["One", "Two"]
    assert find_missing_sections("", required) == required


def test_headings_similar_requires_minimum_length():
    assert not headings_similar("faq", "faqs")
    assert headings_similar("pricing plans", "pricing plans compared")


def test_content_sections_skip_boilerplate():
    headings = ["Key Takeaways", "Table of Contents", "Why It Matters", "FAQ", "Frequently Asked Questions", "Wrap Up"]
    assert content_sections(headings) == ["Why It Matters", "Wrap Up"]
