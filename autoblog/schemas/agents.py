"""Stage agent input/output schemas."""

from typing import List, Tuple

from pydantic import BaseModel, Field

from autoblog.schemas.pipeline import Outline, ResearchResult, WebsiteContext


# Outline Agent
class OutlineInput(BaseModel):
    """Input for OutlineAgent."""

    keyword: str
    context: WebsiteContext
    research: ResearchResult
    content_length: str = "MEDIUM"
    include_faq: bool = True


# Draft Agent
class DraftInput(BaseModel):
    """Input for DraftAgent."""

    keyword: str
    context: WebsiteContext
    research: ResearchResult
    outline: Outline
    content_length: str = "MEDIUM"
    include_faq: bool = True
    include_toc: bool = True


class DraftOutput(BaseModel):
    """Output from DraftAgent."""

    content: str
    word_count: int
    truncated: bool = False
    missing_sections: List[str] = Field(default_factory=list)
    used_section_fallback: bool = False


# Tone and SEO Agents
class ToneInput(BaseModel):
    """Input for ToneAgent."""

    content: str
    context: WebsiteContext


class SeoInput(BaseModel):
    """Input for SeoAgent."""

    keyword: str
    content: str
    context: WebsiteContext
    links: List[Tuple[str, str]] = Field(default_factory=list)  # (anchor, url)
    content_length: str = "MEDIUM"
    include_faq: bool = True


class RewriteOutput(BaseModel):
    """Output from a full-article rewrite stage."""

    content: str
    word_count: int
    truncated: bool = False


# Metadata Agent
class MetadataInput(BaseModel):
    """Input for MetadataAgent."""

    keyword: str
    content: str
    context: WebsiteContext
