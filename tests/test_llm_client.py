"""Tests for the text service client and image helpers."""

import json

import httpx
import pytest

from autoblog.services.images import ImageService, image_style_for_niche
from autoblog.services.llm_client import LLMClient, LLMResponseError


def _completion(content, finish_reason="stop"):
    return {
        "choices": [{"message": {"content": content}, "finish_reason": finish_reason}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 34},
    }


@pytest.fixture
def api(monkeypatch):
    """Queue of responses served to every httpx.Client; records request payloads."""
    real_client = httpx.Client
    state = {"responses": [], "requests": []}

    def handler(request):
        state["requests"].append(json.loads(request.content))
        return state["responses"].pop(0)

    monkeypatch.setattr(httpx, "Client", lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw))
    monkeypatch.setattr(LLMClient._post.retry, "sleep", lambda seconds: None)
    return state


def test_complete_reports_usage_and_model(api):
    api["responses"].append(httpx.Response(200, json=_completion("Hello")))

    result = LLMClient(default_model="test/model").complete("Say hi", system_prompt="Be brief", max_tokens=50)

    assert result.text == "Hello"
    assert not result.truncated
    assert (result.prompt_tokens, result.output_tokens) == (12, 34)
    payload = api["requests"][0]
    assert payload["model"] == "test/model"
    assert payload["max_tokens"] == 50
    assert payload["messages"][0]["content"].startswith("SECURITY WARNINGS")
    assert payload["messages"][0]["content"].endswith("Be brief")


def test_complete_flags_truncation(api):
    api["responses"].append(httpx.Response(200, json=_completion("Cut o", finish_reason="length")))

    result = LLMClient().complete("Write a lot", model="other/model")

    assert result.truncated
    assert api["requests"][0]["model"] == "other/model"


def test_complete_retries_server_errors(api):
    api["responses"].extend([httpx.Response(503), httpx.Response(200, json=_completion("ok"))])

    assert LLMClient().complete("Hi").text == "ok"
    assert len(api["requests"]) == 2


def test_client_errors_are_not_retried(api):
    api["responses"].append(httpx.Response(400))

    with pytest.raises(httpx.HTTPStatusError):
        LLMClient().complete("Hi")
    assert len(api["requests"]) == 1


def test_no_choices_raises(api):
    api["responses"].append(httpx.Response(200, json={"choices": []}))

    with pytest.raises(LLMResponseError):
        LLMClient().complete("Hi")


def test_complete_json_strips_fences(api):
    api["responses"].append(httpx.Response(200, json=_completion('```json\n{"title": "Guide"}\n```')))

    assert LLMClient().complete_json("Outline please") == {"title": "Guide"}
    payload = api["requests"][0]
    assert payload["response_format"] == {"type": "json_object"}
    assert payload["temperature"] == 0.3


def test_complete_json_invalid(api):
    api["responses"].append(httpx.Response(200, json=_completion("not json at all")))

    with pytest.raises(LLMResponseError):
        LLMClient().complete_json("Outline please")


@pytest.mark.parametrize(
    "niche,expected",
    [
        ("accounting for freelancers", "professional corporate illustration"),
        ("outdoor adventure travel", "vivid landscape photography"),
        ("AI tools", "clean modern flat illustration"),
        ("knitting", "clean professional illustration"),
    ],
)
def test_image_style_for_niche(niche, expected):
    assert image_style_for_niche(niche).startswith(expected)


def test_image_service_configured():
    assert not ImageService(api_key="").configured
    assert ImageService(api_key="key").configured
