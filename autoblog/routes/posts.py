"""Blog post routes."""

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from autoblog.database import get_db
from autoblog.dependencies import get_publish_hook
from autoblog.models.post import BlogPost
from autoblog.schemas.pipeline import ScoreResult
from autoblog.services.scorer import calculate_content_score

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


def _get_post(db: Session, post_id: uuid.UUID) -> BlogPost:
    post = db.get(BlogPost, post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.get("/{post_id}/score", response_model=ScoreResult)
def get_score(
    post_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    """Content score with a per-factor breakdown."""
    post = _get_post(db, post_id)
    return calculate_content_score(
        post.content,
        post.title,
        meta_title=post.meta_title,
        meta_description=post.meta_description,
        focus_keyword=post.focus_keyword,
        featured_image=post.featured_image,
        featured_image_alt=post.featured_image_alt,
    )


@router.post("/{post_id}/publish")
def publish_post(
    post_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    publish_hook=Depends(get_publish_hook),
):
    """
    Publish a post and run the publish hook after the response is sent.

    The hook only runs on the transition to PUBLISHED; publishing an already
    published post is a no-op.
    """
    post = _get_post(db, post_id)
    if post.status != "PUBLISHED":
        post.status = "PUBLISHED"
        post.published_at = post.published_at or datetime.utcnow()
        db.commit()
        logger.info(f"Published post {post_id}")
        background_tasks.add_task(publish_hook, post.id, "manual")

    return {
        "id": str(post.id),
        "status": post.status,
        "published_at": post.published_at.isoformat() if post.published_at else None,
    }
