"""Side effects after a post is published: webhook delivery and retroactive linking."""

import hashlib
import hmac
import json
import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

import httpx
from sqlalchemy.orm import Session

from autoblog.database import SessionLocal
from autoblog.models.post import BlogPost
from autoblog.models.website import Website
from autoblog.services.internal_linker import InternalLinker
from autoblog.services.llm_client import LLMClient
from autoblog.services.pipeline import blog_base_url

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT_SECONDS = 15


def sign_payload(body: str, secret: str) -> str:
    """HMAC-SHA256 signature header value for a webhook body."""
    digest = hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def build_webhook_payload(post: BlogPost, base_url: str) -> dict:
    """Event payload describing a published post."""
    return {
        "event": "post.published",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "post": {
            "id": str(post.id),
            "title": post.title,
            "slug": post.slug,
            "url": f"{base_url}/{post.slug}",
            "excerpt": post.excerpt,
            "content": post.content,
            "meta_title": post.meta_title,
            "meta_description": post.meta_description,
            "focus_keyword": post.focus_keyword,
            "featured_image": post.featured_image,
            "tags": post.tags or [],
            "category": post.category,
            "word_count": post.word_count,
            "reading_time": post.reading_time,
            "published_at": post.published_at.isoformat() if post.published_at else None,
        },
    }


def send_webhook(website: Website, post: BlogPost, base_url: str, client: Optional[httpx.Client] = None) -> bool:
    """
    POST the post.published event to the website's webhook.

    Returns:
        True if the receiver answered with a 2xx status
    """
    body = json.dumps(build_webhook_payload(post, base_url))
    headers = {
        "Content-Type": "application/json",
        "User-Agent": "Autoblog-Webhook/1.0",
        "X-Event": "post.published",
        "X-Post-Id": str(post.id),
    }
    if website.webhook_secret:
        headers["X-Signature"] = sign_payload(body, website.webhook_secret)

    owns_client = client is None
    client = client or httpx.Client(timeout=WEBHOOK_TIMEOUT_SECONDS)
    try:
        response = client.post(website.webhook_url, content=body, headers=headers)
    finally:
        if owns_client:
            client.close()

    if response.is_success:
        logger.info(f"Webhook delivered for post {post.id} ({response.status_code})")
        return True
    logger.warning(f"Webhook for post {post.id} returned {response.status_code}")
    return False


def run_publish_hook(
    post_id: uuid.UUID,
    triggered_by: str = "manual",
    session_factory: Callable[[], Session] = SessionLocal,
    llm_client: Optional[LLMClient] = None,
    http_client: Optional[httpx.Client] = None,
):
    """
    Run post-publish side effects for a post.

    Failures are logged; nothing is raised to the caller, and the post's
    published state is never changed here.

    Args:
        post_id: The published post
        triggered_by: "auto" from the job queue, "manual" from the API
        session_factory: Callable returning a new database session
        llm_client: Text service client for the internal linker
        http_client: HTTP client for webhook delivery
    """
    db = session_factory()
    try:
        post = db.get(BlogPost, post_id)
        if not post:
            logger.warning(f"Publish hook: post {post_id} not found")
            return
        website = db.get(Website, post.website_id)
        if not website:
            logger.warning(f"Publish hook: website for post {post_id} not found")
            return

        base_url = blog_base_url(website)
        model = website.preferred_model or None
        logger.info(f"Publish hook for post {post_id} ({triggered_by})")

        if website.webhook_url:
            try:
                send_webhook(website, post, base_url, client=http_client)
            except httpx.HTTPError as e:
                logger.error(f"Webhook delivery failed for post {post_id}: {e}")
    finally:
        db.close()

    try:
        linker = InternalLinker(llm_client or LLMClient(), session_factory=session_factory, model=model)
        linker.link_new_post(post_id, base_url)
    except Exception as e:
        logger.error(f"Internal linking failed for post {post_id}: {e}", exc_info=True)
