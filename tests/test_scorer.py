"""Tests for the content score."""

from autoblog.services.scorer import calculate_content_score

META_TITLE = "Best Trail Shoes for Rocky Terrain 2026"
META_DESCRIPTION = "Find the best trail shoes for rocky terrain. " * 3


def _paragraph(i: int) -> str:
    words = " ".join(f"w{i}x{j}" for j in range(45))
    prefix = "trail shoes " if i % 3 == 0 else ""
    link = f" [guide {i}](https://acme.example/p{i})" if i < 15 else ""
    return f"{prefix}{words}{link}."


def _strong_article() -> str:
    blocks = ["## Why trail shoes matter", "### Grip"]
    blocks += [_paragraph(i) for i in range(12)]
    blocks.append("## Fit")
    blocks += [_paragraph(i) for i in range(12, 24)]
    blocks.append("## Care")
    blocks += [_paragraph(i) for i in range(24, 36)]
    return "\n\n".join(blocks)


def _factor(result, name):
    return next(f for f in result.factors if f.factor == name)


def test_strong_article_earns_every_point():
    result = calculate_content_score(
        _strong_article(),
        "Best Trail Shoes",
        meta_title=META_TITLE,
        meta_description=META_DESCRIPTION,
        focus_keyword="Trail Shoes",
        featured_image="https://cdn.example/img.png",
        featured_image_alt="trail shoes on rocks",
    )

    assert len(result.factors) == 12
    assert all(f.points_earned == f.points_possible for f in result.factors)
    assert result.score == 95


def test_empty_article_scores_only_structure_floor_and_readability():
    result = calculate_content_score("", "")

    assert result.score == 7
    assert _factor(result, "Heading structure").points_earned == 2
    assert _factor(result, "Readability").points_earned == 5
    assert _factor(result, "Focus keyword set").points_earned == 0


def test_partial_meta_and_image_credit():
    result = calculate_content_score(
        "Some text about trail shoes.",
        "Trail shoes",
        meta_title="Short",
        meta_description="Too short",
        focus_keyword="trail shoes",
        featured_image="https://cdn.example/img.png",
    )

    assert _factor(result, "Meta title").points_earned == 4
    assert _factor(result, "Meta description").points_earned == 4
    assert _factor(result, "Featured image").points_earned == 4
    assert _factor(result, "Keyword density").points_earned == 4


def test_long_paragraph_costs_readability():
    paragraph = " ".join(f"word{i}" for i in range(100))

    result = calculate_content_score(paragraph, "Title")

    assert _factor(result, "Readability").points_earned == 2


def test_score_is_deterministic():
    args = (_strong_article(), "Best Trail Shoes", META_TITLE, META_DESCRIPTION, "trail shoes")

    assert calculate_content_score(*args) == calculate_content_score(*args)


def test_word_count_points_never_drop_as_length_grows():
    points = []
    for count in range(500, 1601, 100):
        content = " ".join(f"w{i}" for i in range(count))
        points.append(_factor(calculate_content_score(content, "Title"), "Word count").points_earned)

    assert points == sorted(points)
    assert (points[0], points[-1]) == (3, 10)
