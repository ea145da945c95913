"""Generation pipeline schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


# Text service
class TextResult(BaseModel):
    """Result of a single text completion call."""

    text: str
    finish_reason: Optional[str] = None
    prompt_tokens: int = 0
    output_tokens: int = 0
    truncated: bool = False


# Website context
class ExistingPost(BaseModel):
    """A published post that new articles may link to."""

    title: str
    slug: str
    url: str
    focus_keyword: str = ""


class InternalLink(BaseModel):
    """A manually configured keyword -> URL link target."""

    keyword: str
    url: str


class WebsiteContext(BaseModel):
    """Brand context injected into every prompt."""

    id: str
    brand_name: str
    brand_url: str
    niche: str
    target_audience: str = ""
    tone: str = "professional"
    description: str = ""
    existing_posts: List[ExistingPost] = Field(default_factory=list)
    internal_links: List[InternalLink] = Field(default_factory=list)
    cta_text: Optional[str] = None
    cta_url: Optional[str] = None
    avoid_topics: List[str] = Field(default_factory=list)
    writing_style: Optional[str] = None
    required_sections: List[str] = Field(default_factory=list)
    unique_value_prop: Optional[str] = None
    competitors: List[str] = Field(default_factory=list)
    key_products: List[str] = Field(default_factory=list)
    target_location: Optional[str] = None


class GenerationOptions(BaseModel):
    """Per-job switches for the pipeline."""

    content_length: str = "MEDIUM"  # SHORT, MEDIUM, LONG, PILLAR
    include_images: bool = True
    include_faq: bool = True
    include_toc: bool = True


class GenerationProgress(BaseModel):
    """Progress event emitted at each stage boundary."""

    step: str
    step_index: int
    total_steps: int
    message: str
    percentage: int


# Research
class ResearchResult(BaseModel):
    """Structured research findings for a keyword."""

    raw_research: str
    top_ranking_content: str = ""
    content_gaps: List[str] = Field(default_factory=list)
    missing_subtopics: List[str] = Field(default_factory=list)
    competitor_headings: List[str] = Field(default_factory=list)
    key_statistics: List[str] = Field(default_factory=list)
    related_topics: List[str] = Field(default_factory=list)
    common_questions: List[str] = Field(default_factory=list)
    suggested_angle: str = ""
    is_fallback: bool = False


# Crawler
class CrawledPage(BaseModel):
    """A same-site page discovered while crawling."""

    title: str
    url: str


class CrawlResult(BaseModel):
    """Best-effort snapshot of a website."""

    page_text: str = ""
    meta_description: str = ""
    favicon: Optional[str] = None
    pages: List[CrawledPage] = Field(default_factory=list)


# Outline stage
class OutlineSection(BaseModel):
    """A planned H2 section."""

    heading: str
    points: List[str] = Field(default_factory=list)


class Outline(BaseModel):
    """Article outline returned by the outline stage."""

    title: str
    sections: List[OutlineSection] = Field(min_length=1)
    unique_angle: str = ""


# Metadata stage
class ArticleMetadata(BaseModel):
    """SEO metadata and social captions returned by the metadata stage."""

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        """Treat null fields as missing so defaults apply."""
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    title: str = ""
    slug: str = ""
    excerpt: str = ""
    meta_title: str = ""
    meta_description: str = ""
    secondary_keywords: List[str] = Field(default_factory=list)
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    twitter_caption: str = ""
    linkedin_caption: str = ""
    instagram_caption: str = ""
    facebook_caption: str = ""
    structured_data: Dict[str, Any] = Field(default_factory=dict)
    featured_image_alt: str = ""


class SocialCaptions(BaseModel):
    """Per-network share captions."""

    twitter: str = ""
    linkedin: str = ""
    instagram: str = ""
    facebook: str = ""


class GeneratedArticle(BaseModel):
    """Final pipeline output, ready to persist."""

    title: str
    slug: str
    content: str
    excerpt: str = ""
    meta_title: str = ""
    meta_description: str = ""
    focus_keyword: str
    secondary_keywords: List[str] = Field(default_factory=list)
    featured_image_url: Optional[str] = None
    featured_image_alt: Optional[str] = None
    structured_data: Dict[str, Any] = Field(default_factory=dict)
    social_captions: SocialCaptions = Field(default_factory=SocialCaptions)
    word_count: int
    reading_time: int
    tags: List[str] = Field(default_factory=list)
    category: str = ""
    research_data: Optional[ResearchResult] = None
    model: str = ""
    version_label: str = "draft"  # Which candidate won best-version selection
    stage_word_counts: Dict[str, int] = Field(default_factory=dict)


# Content scoring
class ScoreFactor(BaseModel):
    """One line of the content score breakdown."""

    factor: str
    points_earned: int
    points_possible: int
    note: str


class ScoreResult(BaseModel):
    """Content score with breakdown."""

    score: int
    factors: List[ScoreFactor]


# Topic clusters
class ClusterKeyword(BaseModel):
    """A keyword suggested for a topic cluster."""

    keyword: str
    role: str = "supporting"  # 'pillar' or 'supporting'
    search_intent: str = "informational"  # informational, commercial, transactional
    suggested_word_count: int = 1500
    description: str = ""


class ClusterSuggestion(BaseModel):
    """Topic cluster preview: one pillar plus supporting keywords."""

    pillar_title: str
    description: str = ""
    keywords: List[ClusterKeyword] = Field(default_factory=list)
