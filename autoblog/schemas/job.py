"""Job and request/response schemas for the HTTP surface."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class JobInput(BaseModel):
    """Payload stored on a generation job and used to rebuild it on retry."""

    keyword_id: UUID
    keyword: str
    website_id: UUID
    content_length: str = "MEDIUM"
    include_images: bool = True
    include_faq: bool = True
    include_toc: bool = True
    auto_publish: bool = False


class KeywordCreate(BaseModel):
    """Schema for adding keywords to a website."""

    keywords: List[str] = Field(min_length=1)


class KeywordResponse(BaseModel):
    """A keyword row."""

    id: UUID
    keyword: str
    status: str
    retry_count: int
    blog_post_id: Optional[UUID] = None


class GenerateRequest(BaseModel):
    """Request to generate an article for a keyword."""

    keyword_id: UUID
    content_length: str = "MEDIUM"
    include_images: bool = True
    include_faq: bool = True
    include_toc: bool = True
    auto_publish: Optional[bool] = None  # Defaults to the website setting


class JobCreated(BaseModel):
    """Response after enqueueing a job."""

    job_id: UUID
    status: str
    message: str


class JobStatus(BaseModel):
    """Job status response."""

    id: UUID
    status: str
    current_step: Optional[str] = None
    progress: int
    error: Optional[str] = None
    keyword: Optional[str] = None
    blog_post_id: Optional[UUID] = None
    output: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ProcessRequest(BaseModel):
    """Worker trigger; processes the oldest queued job when job_id is omitted."""

    job_id: Optional[UUID] = None


class ClusterPreviewRequest(BaseModel):
    """Seed topic for a topic cluster preview."""

    seed_topic: str = Field(min_length=2)


class GenerationLimit(BaseModel):
    """Result of the monthly quota check."""

    allowed: bool
    reason: Optional[str] = None
    remaining: Optional[int] = None
