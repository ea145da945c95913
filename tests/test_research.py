"""Tests for keyword research parsing and fallback."""

import json

import httpx
import pytest

from autoblog.services.research import ResearchService, extract_section, parse_research

RAW = """## Part 1 - Competitor analysis
- Top article from RunnerMag covers basic sizing only

## Part 2 - Content gaps
- Nobody compares drop heights for beginners
- Few guides mention muddy terrain grip

## Part 3 - Winning angle
- Lead with terrain type before brand choice

## Part 4 - Statistics
- 62% of trail runners replace shoes every 500 km
"""


@pytest.fixture
def mock_research_api(monkeypatch):
    """Route the research client to a handler; returns the list of request payloads."""
    real_client = httpx.Client
    state = {"requests": [], "response": httpx.Response(200, json={"choices": [{"message": {"content": RAW}}]})}

    def handler(request):
        state["requests"].append(json.loads(request.content))
        return state["response"]

    monkeypatch.setattr(httpx, "Client", lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw))
    return state


def test_extract_section_reads_lines_under_heading():
    assert extract_section(RAW, "content gap") == [
        "Nobody compares drop heights for beginners",
        "Few guides mention muddy terrain grip",
    ]


def test_extract_section_bold_heading():
    text = "**Common Questions**\n1. How tight should trail shoes fit?\n**Other**\n- ignored line here"
    assert extract_section(text, "question") == ["How tight should trail shoes fit?"]


def test_extract_section_falls_back_to_bullets():
    text = "Intro line\n- first bullet with enough text\n- short\n* second bullet with enough text"
    assert extract_section(text, "nothing matches") == [
        "first bullet with enough text",
        "second bullet with enough text",
    ]


def test_parse_research():
    result = parse_research(RAW)

    assert result.raw_research == RAW
    assert result.top_ranking_content == "Top article from RunnerMag covers basic sizing only"
    assert "Nobody compares drop heights for beginners" in result.content_gaps
    assert result.suggested_angle == "Lead with terrain type before brand choice"
    assert result.key_statistics == ["62% of trail runners replace shoes every 500 km"]
    assert not result.is_fallback


def test_research_without_key_uses_fallback(context):
    result = ResearchService(api_key="").research("trail running shoes", context)

    assert result.is_fallback
    assert "Frequently Asked Questions" in result.competitor_headings
    assert "trail runners" in result.suggested_angle


def test_research_parses_service_answer(context, mock_research_api):
    result = ResearchService(api_key="key").research("trail running shoes", context)

    assert not result.is_fallback
    assert result.suggested_angle == "Lead with terrain type before brand choice"
    payload = mock_research_api["requests"][0]
    assert payload["messages"][0]["role"] == "system"
    assert '"trail running shoes"' in payload["messages"][1]["content"]


def test_research_error_uses_fallback(context, mock_research_api):
    mock_research_api["response"] = httpx.Response(500, text="upstream error")

    result = ResearchService(api_key="key").research("trail running shoes", context)

    assert result.is_fallback


def test_query_without_key_returns_empty():
    assert ResearchService(api_key="").query("system", "prompt") == ""
