"""Tests for the generation pipeline and best-version selection."""

import pytest

from autoblog.agents.draft import DraftAgent
from autoblog.schemas.pipeline import GenerationOptions, InternalLink, Outline, TextResult, WebsiteContext
from autoblog.services.llm_client import LLMResponseError
from autoblog.services.pipeline import Candidate, PipelineController, select_best_version
from autoblog.services.postprocess import post_process
from autoblog.services.research import ResearchService, fallback_research

from tests.conftest import FakeTextService, make_article

HEADINGS = ["Key Takeaways", "Choosing Trail Running Shoes", "Fit and Sizing", "Caring for Your Shoes", "FAQ"]
OUTLINE = {
    "title": "Trail Running Shoes: The Complete Guide",
    "sections": [{"heading": h, "points": [f"about {h.lower()}"]} for h in HEADINGS],
    "unique_angle": "Terrain first",
}
METADATA = {
    "slug": "Trail Running Shoes Guide!",
    "meta_title": "Trail Running Shoes Guide",
    "meta_description": "How to choose trail running shoes.",
    "excerpt": "Pick the right pair.",
    "tags": ["shoes"],
    "category": None,
    "featured_image_alt": None,
}


def _pipeline(responses):
    llm = FakeTextService(responses)
    return llm, PipelineController(llm, research_service=ResearchService(api_key=""))


def _options():
    return GenerationOptions(content_length="SHORT", include_images=False)


def _context():
    return WebsiteContext(
        id="site-1",
        brand_name="Acme Trails",
        brand_url="https://acme.example",
        niche="outdoor gear",
        target_audience="trail runners",
        tone="friendly",
    )


# select_best_version


def test_later_versions_win_when_long_enough():
    best = select_best_version(
        [
            Candidate(label="draft", content="d", word_count=1000),
            Candidate(label="tone", content="t", word_count=800, min_ratio=0.7),
            Candidate(label="seo", content="s", word_count=700, min_ratio=0.6),
        ]
    )
    assert best.label == "seo"


def test_truncated_tone_keeps_draft():
    best = select_best_version(
        [
            Candidate(label="draft", content="d", word_count=1000),
            Candidate(label="tone", content="t", word_count=1100, truncated=True, min_ratio=0.7),
        ]
    )
    assert best.label == "draft"


def test_short_seo_keeps_tone():
    best = select_best_version(
        [
            Candidate(label="draft", content="d", word_count=1000),
            Candidate(label="tone", content="t", word_count=1000, min_ratio=0.7),
            Candidate(label="seo", content="s", word_count=400, min_ratio=0.6),
        ]
    )
    assert best.label == "tone"


def test_falls_back_to_draft_below_floor():
    """Each step is within its own ratio but the chain drifted under half the draft."""
    best = select_best_version(
        [
            Candidate(label="draft", content="d", word_count=1000),
            Candidate(label="tone", content="t", word_count=700, min_ratio=0.7),
            Candidate(label="seo", content="s", word_count=420, min_ratio=0.6),
        ]
    )
    assert best.label == "draft"


# PipelineController.generate


def test_generate_runs_every_stage_in_order():
    seo_text = make_article(HEADINGS, 140, "sx")
    llm, pipeline = _pipeline(
        [
            OUTLINE,
            make_article(HEADINGS, 150, "dx"),
            make_article(HEADINGS, 145, "tx"),
            seo_text,
            METADATA,
        ]
    )
    events = []

    article = pipeline.generate("trail running shoes", _context(), _options(), on_progress=events.append)

    assert [e.step for e in events] == ["research", "outline", "draft", "tone", "seo", "metadata"]
    assert events[0].total_steps == 7
    assert [e.percentage for e in events] == [14, 29, 43, 57, 71, 86]
    assert article.version_label == "seo"
    assert article.content == post_process(seo_text, [], site_url="https://acme.example")
    assert article.slug == "trail-running-shoes-guide"
    assert article.title == OUTLINE["title"]
    assert article.category == "outdoor gear"
    assert article.featured_image_alt == "trail running shoes"
    assert article.model == "test/model"
    assert article.research_data.is_fallback
    assert set(article.stage_word_counts) == {"draft", "tone", "seo"}
    assert [c["method"] for c in llm.calls] == [
        "complete_json",
        "complete",
        "complete",
        "complete",
        "complete_json",
    ]


def test_model_override_reaches_every_call():
    llm, pipeline = _pipeline(
        [
            OUTLINE,
            make_article(HEADINGS, 150, "dx"),
            make_article(HEADINGS, 145, "tx"),
            make_article(HEADINGS, 140, "sx"),
            METADATA,
        ]
    )

    article = pipeline.generate("trail running shoes", _context(), _options(), model="custom/model")

    assert all(call["model"] == "custom/model" for call in llm.calls)
    assert article.model == "custom/model"


def test_truncated_tone_sends_draft_to_seo():
    draft_text = make_article(HEADINGS, 150, "dx")
    llm, pipeline = _pipeline(
        [
            OUTLINE,
            draft_text,
            TextResult(text=make_article(HEADINGS, 150, "tx"), finish_reason="length", truncated=True),
            make_article(HEADINGS, 140, "sx"),
            METADATA,
        ]
    )

    article = pipeline.generate("trail running shoes", _context(), _options())

    seo_prompt = llm.calls[3]["prompt"]
    assert "dx0 " in seo_prompt
    assert "tx0 " not in seo_prompt
    assert article.version_label == "seo"


def test_truncated_seo_publishes_tone():
    tone_text = make_article(HEADINGS, 145, "tx")
    llm, pipeline = _pipeline(
        [
            OUTLINE,
            make_article(HEADINGS, 150, "dx"),
            tone_text,
            TextResult(text=make_article(HEADINGS, 60, "sx"), finish_reason="length", truncated=True),
            METADATA,
        ]
    )

    article = pipeline.generate("trail running shoes", _context(), _options())

    assert article.version_label == "tone"
    assert article.content == post_process(tone_text, [], site_url="https://acme.example")


def test_seo_unapproved_links_are_stripped():
    approved = "https://acme.example/blog/hydration"
    seo_text = (
        make_article(HEADINGS, 140, "sx")
        + f"\n\nSee [secret](https://acme.example/blog/secret) and [hydration]({approved})."
    )
    context = _context()
    context.internal_links = [InternalLink(keyword="hydration", url=approved)]
    llm, pipeline = _pipeline(
        [OUTLINE, make_article(HEADINGS, 150, "dx"), make_article(HEADINGS, 145, "tx"), seo_text, METADATA]
    )

    article = pipeline.generate("trail running shoes", context, _options())

    assert "[secret]" not in article.content
    assert f"[hydration]({approved})" in article.content


def test_slug_falls_back_to_title_then_keyword():
    llm, pipeline = _pipeline(
        [
            OUTLINE,
            make_article(HEADINGS, 150, "dx"),
            make_article(HEADINGS, 145, "tx"),
            make_article(HEADINGS, 140, "sx"),
            {**METADATA, "slug": "!!!"},
        ]
    )

    article = pipeline.generate("trail running shoes", _context(), _options())

    assert article.slug == "trail-running-shoes-the-complete-guide"


def test_invalid_outline_fails_the_run():
    llm, pipeline = _pipeline([{"title": "No sections", "sections": []}])

    with pytest.raises(LLMResponseError):
        pipeline.generate("trail running shoes", _context(), _options())


def test_image_step_reported_when_images_enabled_without_service():
    llm, pipeline = _pipeline(
        [
            OUTLINE,
            make_article(HEADINGS, 150, "dx"),
            make_article(HEADINGS, 145, "tx"),
            make_article(HEADINGS, 140, "sx"),
            METADATA,
        ]
    )
    events = []

    article = pipeline.generate(
        "trail running shoes",
        _context(),
        GenerationOptions(content_length="SHORT", include_images=True),
        on_progress=events.append,
    )

    assert events[-1].step == "image"
    assert events[-1].percentage == 100
    assert article.featured_image_url is None


# DraftAgent


def _draft_payload(context):
    return {
        "keyword": "trail running shoes",
        "context": context,
        "research": fallback_research("trail running shoes", context),
        "outline": Outline(**OUTLINE),
        "content_length": "SHORT",
        "include_faq": True,
        "include_toc": True,
    }


def test_short_draft_falls_back_to_section_generation(context):
    section_headings = ["Choosing Trail Running Shoes", "Fit and Sizing", "Caring for Your Shoes"]
    llm = FakeTextService(
        [
            make_article(HEADINGS, 20, "dx"),
            "Hook paragraph.\n\n## Key Takeaways\n\n- one\n- two",
            make_article(section_headings[:1], 250, "ax"),
            " ".join(f"bx{i}" for i in range(250)) + ".",
            make_article(section_headings[2:], 250, "cx"),
        ]
    )

    result = DraftAgent(llm).execute(_draft_payload(context))

    assert result["used_section_fallback"]
    assert result["missing_sections"] == []
    assert "## Fit and Sizing" in result["content"]
    assert result["word_count"] > 600
    # intro plus one call per content section
    assert len(llm.calls) == 5
    assert all(call["max_tokens"] == 2048 for call in llm.calls[1:])
    assert "Table of Contents" in llm.calls[1]["prompt"]


def test_draft_missing_sections_triggers_fallback(context):
    llm = FakeTextService(
        [
            make_article(["Key Takeaways", "Choosing Trail Running Shoes"], 400, "dx"),
            "Hook.",
            make_article(["Choosing Trail Running Shoes"], 350, "ax"),
            make_article(["Fit and Sizing"], 350, "bx"),
            make_article(["Caring for Your Shoes"], 350, "cx"),
        ]
    )

    result = DraftAgent(llm).execute(_draft_payload(context))

    assert result["used_section_fallback"]


def test_good_draft_is_used_as_is(context):
    draft_text = make_article(HEADINGS, 150, "dx")
    llm = FakeTextService([draft_text])

    result = DraftAgent(llm).execute(_draft_payload(context))

    assert result["content"] == draft_text
    assert not result["used_section_fallback"]
    assert len(llm.calls) == 1


def _medium_payload(context):
    return {**_draft_payload(context), "content_length": "MEDIUM"}


def test_medium_draft_below_minimum_with_missing_sections_uses_longer_stitch(context):
    draft_text = make_article(["Key Takeaways", "Choosing Trail Running Shoes"], 450, "dx")
    llm = FakeTextService(
        [
            draft_text,
            "Hook.",
            make_article(["Choosing Trail Running Shoes"], 350, "ax"),
            make_article(["Fit and Sizing"], 350, "bx"),
            make_article(["Caring for Your Shoes"], 350, "cx"),
        ]
    )

    result = DraftAgent(llm).execute(_medium_payload(context))

    assert result["used_section_fallback"]
    assert result["word_count"] > 900
    assert result["missing_sections"] == []
    assert "About 834 words" in llm.calls[2]["prompt"]


def test_shorter_stitch_keeps_original_draft(context):
    draft_text = make_article(["Key Takeaways", "Choosing Trail Running Shoes"], 450, "dx")
    llm = FakeTextService(
        [
            draft_text,
            "Hook.",
            make_article(["Choosing Trail Running Shoes"], 100, "ax"),
            make_article(["Fit and Sizing"], 100, "bx"),
            make_article(["Caring for Your Shoes"], 100, "cx"),
        ]
    )

    result = DraftAgent(llm).execute(_medium_payload(context))

    assert not result["used_section_fallback"]
    assert result["content"] == draft_text
    assert len(result["missing_sections"]) == 2
