"""Tests for topic cluster suggestions."""

import pytest

from autoblog.schemas.pipeline import (
    ClusterKeyword,
    ClusterSuggestion,
    CrawledPage,
    CrawlResult,
    ExistingPost,
)
from autoblog.services.cluster import ClusterGenerator, ensure_single_pillar
from autoblog.services.llm_client import LLMResponseError
from autoblog.services.research import ResearchService

from tests.conftest import FakeTextService

CLUSTER = {
    "pillar_title": "Trail Running",
    "description": "Everything about trail running.",
    "keywords": [
        {"keyword": "complete guide to trail running", "role": "pillar", "suggested_word_count": 3000},
        {"keyword": "trail running shoes for wide feet", "role": "supporting", "search_intent": "commercial"},
        {"keyword": "how to start trail running after 40"},
    ],
}


class FakeCrawler:
    def __init__(self, pages=None):
        self.pages = pages or []
        self.urls = []

    def crawl(self, url):
        self.urls.append(url)
        return CrawlResult(pages=self.pages)


def _suggestion(*roles):
    return ClusterSuggestion(
        pillar_title="Trail Running",
        keywords=[ClusterKeyword(keyword=f"keyword {i}", role=role) for i, role in enumerate(roles)],
    )


def _generator(responses, pages=None):
    llm = FakeTextService(responses)
    crawler = FakeCrawler(pages)
    generator = ClusterGenerator(llm, research_service=ResearchService(api_key=""), crawler=crawler)
    return llm, crawler, generator


def test_single_pillar_is_kept():
    suggestion = ensure_single_pillar(_suggestion("supporting", "pillar", "supporting"))
    assert [k.role for k in suggestion.keywords] == ["supporting", "pillar", "supporting"]


@pytest.mark.parametrize(
    "roles",
    [
        ("pillar", "pillar", "supporting"),
        ("supporting", "supporting", "supporting"),
    ],
)
def test_first_keyword_becomes_pillar(roles):
    suggestion = ensure_single_pillar(_suggestion(*roles))
    assert [k.role for k in suggestion.keywords] == ["pillar", "supporting", "supporting"]


def test_empty_cluster_is_left_alone():
    assert ensure_single_pillar(_suggestion()).keywords == []


def test_generate_uses_site_pages_when_research_unavailable(context):
    pages = [CrawledPage(title="Trail Shoes", url="https://acme.example/shoes")]
    llm, crawler, generator = _generator([CLUSTER], pages)
    context.avoid_topics = ["road racing"]

    suggestion = generator.generate(
        "trail running",
        context,
        existing_keywords=["trail running shoes"],
        published_posts=[ExistingPost(title="Hydration 101", slug="hydration-101", url="u", focus_keyword="hydration")],
    )

    assert crawler.urls == ["https://acme.example"]
    assert suggestion.pillar_title == "Trail Running"
    assert [k.role for k in suggestion.keywords] == ["pillar", "supporting", "supporting"]
    assert suggestion.keywords[2].search_intent == "informational"

    prompt = llm.calls[0]["prompt"]
    assert "- Trail Shoes: https://acme.example/shoes" in prompt
    assert "trail running shoes" in prompt.split("## Keywords Already in Queue")[1]
    assert '- "Hydration 101" [keyword: hydration]' in prompt
    assert "- road racing" in prompt.split("## Excluded Topics")[1]


def test_generate_falls_back_to_topic_line(context):
    llm, _, generator = _generator([CLUSTER])

    generator.generate("trail running", context)

    prompt = llm.calls[0]["prompt"]
    assert "Topic: trail running for Acme Trails in outdoor gear." in prompt
    assert "## Keywords Already in Queue" not in prompt
    assert "## Excluded Topics" not in prompt


def test_generate_passes_model_override(context):
    llm, _, generator = _generator([CLUSTER])

    generator.generate("trail running", context, model="custom/model")

    assert llm.calls[0]["model"] == "custom/model"


def test_invalid_cluster_raises(context):
    _, _, generator = _generator([{"keywords": "not a list"}])

    with pytest.raises(LLMResponseError):
        generator.generate("trail running", context)
