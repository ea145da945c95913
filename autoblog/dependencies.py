"""Shared FastAPI dependencies."""

from typing import Optional

from fastapi import Header, HTTPException

from autoblog.config import settings
from autoblog.services.cluster import ClusterGenerator
from autoblog.services.job_queue import JobQueue
from autoblog.services.llm_client import LLMClient
from autoblog.services.publish import run_publish_hook

_job_queue: Optional[JobQueue] = None


def get_job_queue() -> JobQueue:
    """Process-wide job queue with default collaborators."""
    global _job_queue
    if _job_queue is None:
        _job_queue = JobQueue()
    return _job_queue


def get_llm_client() -> LLMClient:
    return LLMClient()


def get_publish_hook():
    return run_publish_hook


def verify_worker_secret(authorization: Optional[str] = Header(default=None)):
    """Require `Authorization: Bearer <WORKER_SECRET>` when a secret is configured."""
    if not settings.WORKER_SECRET:
        return
    if authorization != f"Bearer {settings.WORKER_SECRET}":
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_cluster_generator() -> ClusterGenerator:
    return ClusterGenerator(get_llm_client())
