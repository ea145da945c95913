"""Website routes: keywords, generation, jobs and topic clusters."""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from autoblog.database import get_db
from autoblog.dependencies import get_cluster_generator, get_job_queue
from autoblog.models.keyword import Keyword
from autoblog.models.post import BlogPost
from autoblog.models.website import Website
from autoblog.schemas.job import (
    ClusterPreviewRequest,
    GenerateRequest,
    JobCreated,
    JobInput,
    JobStatus,
    KeywordCreate,
    KeywordResponse,
)
from autoblog.schemas.pipeline import ClusterSuggestion, ExistingPost
from autoblog.services.cluster import ClusterGenerator
from autoblog.services.job_queue import InvalidJobStateError, JobNotFoundError, JobQueue
from autoblog.services.llm_client import LLMResponseError
from autoblog.services.pipeline import blog_base_url, build_website_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/websites", tags=["websites"])


def _get_website(db: Session, website_id: uuid.UUID) -> Website:
    website = db.get(Website, website_id)
    if not website:
        raise HTTPException(status_code=404, detail="Website not found")
    return website


@router.post("/{website_id}/keywords", response_model=List[KeywordResponse])
def add_keywords(
    website_id: uuid.UUID,
    data: KeywordCreate,
    db: Session = Depends(get_db),
):
    """Add keywords to a website's queue, skipping blanks and ones already present."""
    _get_website(db, website_id)

    existing = {
        k.lower()
        for (k,) in db.query(Keyword.keyword).filter(Keyword.website_id == website_id).all()
    }
    created = []
    for text in data.keywords:
        text = text.strip()
        if not text or text.lower() in existing:
            continue
        existing.add(text.lower())
        keyword = Keyword(website_id=website_id, keyword=text, status="PENDING", retry_count=0)
        db.add(keyword)
        created.append(keyword)

    db.commit()
    logger.info(f"Added {len(created)} keywords to website {website_id}")

    return [
        KeywordResponse(id=k.id, keyword=k.keyword, status=k.status, retry_count=k.retry_count)
        for k in created
    ]


@router.post("/{website_id}/generate", response_model=JobCreated)
def generate_article(
    website_id: uuid.UUID,
    data: GenerateRequest,
    db: Session = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    """Check the monthly quota, then enqueue a generation job for a keyword."""
    website = _get_website(db, website_id)

    keyword = db.get(Keyword, data.keyword_id)
    if not keyword or keyword.website_id != website_id:
        raise HTTPException(status_code=404, detail="Keyword not found")

    limit = queue.check_generation_limit(website_id)
    if not limit.allowed:
        raise HTTPException(status_code=402, detail=limit.reason)

    auto_publish = data.auto_publish if data.auto_publish is not None else bool(website.auto_publish)
    job_input = JobInput(
        keyword_id=keyword.id,
        keyword=keyword.keyword,
        website_id=website_id,
        content_length=data.content_length,
        include_images=data.include_images,
        include_faq=data.include_faq,
        include_toc=data.include_toc,
        auto_publish=auto_publish,
    )

    try:
        job_id = queue.enqueue(job_input)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidJobStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return JobCreated(job_id=job_id, status="QUEUED", message="Generation job queued")


@router.get("/{website_id}/jobs", response_model=List[JobStatus])
def list_jobs(
    website_id: uuid.UUID,
    queue: JobQueue = Depends(get_job_queue),
):
    """Active and recently failed jobs for a website."""
    queue.recover_stuck_jobs()
    return queue.list_website_jobs(website_id)


@router.post("/{website_id}/clusters/preview", response_model=ClusterSuggestion)
def preview_cluster(
    website_id: uuid.UUID,
    data: ClusterPreviewRequest,
    db: Session = Depends(get_db),
    generator: ClusterGenerator = Depends(get_cluster_generator),
):
    """Suggest a pillar keyword and supporting keywords for a seed topic."""
    website = _get_website(db, website_id)

    base_url = blog_base_url(website)
    existing_keywords = [
        k for (k,) in db.query(Keyword.keyword).filter(Keyword.website_id == website_id).all()
    ]
    published = (
        db.query(BlogPost)
        .filter(BlogPost.website_id == website_id, BlogPost.status == "PUBLISHED")
        .order_by(BlogPost.published_at.desc())
        .all()
    )
    published_posts = [
        ExistingPost(title=p.title, slug=p.slug, url=f"{base_url}/{p.slug}", focus_keyword=p.focus_keyword or "")
        for p in published
    ]
    context = build_website_context(website)

    try:
        return generator.generate(
            data.seed_topic.strip(),
            context,
            existing_keywords=existing_keywords,
            published_posts=published_posts,
            model=website.preferred_model or None,
        )
    except LLMResponseError as e:
        logger.error(f"Cluster preview failed for website {website_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to generate cluster")
