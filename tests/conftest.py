"""Pytest configuration and fixtures."""

import itertools
import uuid
from typing import List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import autoblog.models  # noqa: F401
from autoblog.database import Base
from autoblog.models.keyword import Keyword
from autoblog.models.subscription import Subscription
from autoblog.models.website import Website
from autoblog.schemas.pipeline import GeneratedArticle, GenerationProgress, TextResult, WebsiteContext
from autoblog.services.pipeline import STEPS


class FakeTextService:
    """Replays scripted responses in call order and records every call.

    Strings and TextResults answer ``complete``; dicts and lists answer
    ``complete_json``; exceptions are raised.
    """

    def __init__(self, responses=None, default_model: str = "test/model"):
        self.responses = list(responses or [])
        self.default_model = default_model
        self.calls: List[dict] = []

    def _next(self):
        if not self.responses:
            raise AssertionError("FakeTextService ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def complete(self, prompt, system_prompt=None, temperature=0.7, max_tokens=4096, model=None, json_mode=False):
        self.calls.append(
            {
                "method": "complete",
                "prompt": prompt,
                "system_prompt": system_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "model": model,
            }
        )
        response = self._next()
        if isinstance(response, str):
            return TextResult(text=response, finish_reason="stop")
        return response

    def complete_json(self, prompt, system_prompt=None, model=None, max_tokens=8192):
        self.calls.append(
            {
                "method": "complete_json",
                "prompt": prompt,
                "system_prompt": system_prompt,
                "max_tokens": max_tokens,
                "model": model,
            }
        )
        return self._next()


def make_article(headings, words_per_section: int = 60, tag: str = "wx") -> str:
    """Markdown article whose words are all distinct, so it never looks self-repeating."""
    counter = itertools.count()
    sections = []
    for heading in headings:
        paragraphs = []
        remaining = words_per_section
        while remaining > 0:
            n = min(40, remaining)
            paragraphs.append(" ".join(f"{tag}{next(counter)}" for _ in range(n)) + ".")
            remaining -= n
        sections.append(f"## {heading}\n\n" + "\n\n".join(paragraphs))
    return "\n\n".join(sections)


def make_generated_article(slug: str = "trail-running-shoes") -> GeneratedArticle:
    return GeneratedArticle(
        title="Trail Running Shoes",
        slug=slug,
        content="## Intro\n\nBody text.",
        focus_keyword="trail running shoes",
        word_count=3,
        reading_time=1,
        model="test/model",
        version_label="tone",
        stage_word_counts={"draft": 3, "tone": 3, "seo": 1},
    )


class FakePipeline:
    """Reports every stage, optionally runs a callback mid-run, then returns or raises."""

    def __init__(self, article=None, error=None, during=None):
        self.article = article or make_generated_article()
        self.error = error
        self.during = during
        self.calls = []

    def generate(self, keyword, context, options=None, on_progress=None, model=None):
        self.calls.append({"keyword": keyword, "context": context, "options": options, "model": model})
        for index, step in enumerate(STEPS[:-1]):
            if on_progress:
                on_progress(
                    GenerationProgress(
                        step=step,
                        step_index=index,
                        total_steps=len(STEPS),
                        message=step,
                        percentage=round((index + 1) / len(STEPS) * 100),
                    )
                )
        if self.during:
            self.during()
        if self.error:
            raise self.error
        return self.article


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite shared by every session of a test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def test_db(session_factory):
    """Create a test database session for each test."""
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def website(test_db):
    site = Website(
        organization_id=uuid.uuid4(),
        brand_name="Acme Trails",
        brand_url="https://acme.example",
        niche="outdoor gear",
        target_audience="trail runners",
        tone="friendly",
        description="Gear and guides for trail runners",
        subdomain="acme",
        internal_links=[],
        competitors=[],
        key_products=[],
        avoid_topics=[],
        required_sections=[],
        auto_publish=False,
    )
    test_db.add(site)
    test_db.commit()
    return site


@pytest.fixture
def subscription(test_db, website):
    sub = Subscription(
        organization_id=website.organization_id,
        plan="STARTER",
        posts_generated_this_month=0,
        max_posts_per_month=10,
    )
    test_db.add(sub)
    test_db.commit()
    return sub


@pytest.fixture
def keyword(test_db, website):
    kw = Keyword(website_id=website.id, keyword="trail running shoes", status="PENDING", retry_count=0)
    test_db.add(kw)
    test_db.commit()
    return kw


@pytest.fixture
def context():
    return WebsiteContext(
        id="site-1",
        brand_name="Acme Trails",
        brand_url="https://acme.example",
        niche="outdoor gear",
        target_audience="trail runners",
        tone="friendly",
    )
