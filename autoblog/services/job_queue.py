"""Database-backed generation job queue."""

import logging
import threading
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from autoblog.config import settings
from autoblog.database import SessionLocal
from autoblog.models.job import Job
from autoblog.models.keyword import Keyword
from autoblog.models.post import BlogPost
from autoblog.models.subscription import Subscription
from autoblog.models.website import Website
from autoblog.schemas.job import GenerationLimit, JobInput, JobStatus
from autoblog.schemas.pipeline import ExistingPost, GeneratedArticle, GenerationOptions, GenerationProgress
from autoblog.services.pipeline import PipelineController, blog_base_url, build_website_context

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "Job timed out. Click Retry to try again."
ACTIVE_STATUSES = ("QUEUED", "PROCESSING")
TERMINAL_STATUSES = ("COMPLETED", "FAILED")
ENQUEUEABLE_KEYWORD_STATUSES = ("PENDING", "FAILED")
EXISTING_POSTS_LIMIT = 50
WEBSITE_JOBS_LIMIT = 5
RECENT_FAILURE_HOURS = 1
SLUG_ATTEMPTS = 3

PublishHook = Callable[[uuid.UUID, str], None]


class JobNotFoundError(LookupError):
    """Raised when a job id does not exist."""


class InvalidJobStateError(ValueError):
    """Raised when an operation is not allowed in the job's current state."""


class JobReclaimedError(RuntimeError):
    """Raised inside a running job once the stuck-job sweep has failed it."""


def unique_slug(db: Session, website_id, base_slug: str) -> str:
    """Return base_slug, or base_slug-N for the first N that is free on this website."""
    slug = base_slug
    suffix = 1
    while db.query(BlogPost.id).filter(BlogPost.website_id == website_id, BlogPost.slug == slug).first():
        slug = f"{base_slug}-{suffix}"
        suffix += 1
    return slug


class JobQueue:
    """Enqueue, lease, run and recover article generation jobs."""

    def __init__(
        self,
        pipeline: Optional[PipelineController] = None,
        session_factory: Callable[[], Session] = SessionLocal,
        publish_hook: Optional[PublishHook] = None,
    ):
        """
        Initialize the queue.

        Args:
            pipeline: Pipeline controller; built with default collaborators when omitted
            session_factory: Callable returning a new database session
            publish_hook: Called as publish_hook(post_id, triggered_by) in a background thread
        """
        if pipeline is None:
            from autoblog.services.images import ImageService
            from autoblog.services.llm_client import LLMClient

            pipeline = PipelineController(LLMClient(), image_service=ImageService())
        if publish_hook is None:
            from autoblog.services.publish import run_publish_hook

            publish_hook = run_publish_hook

        self.pipeline = pipeline
        self.session_factory = session_factory
        self.publish_hook = publish_hook
        self.lease_timeout = timedelta(minutes=settings.JOB_LEASE_TIMEOUT_MINUTES)

    def enqueue(self, job_input: JobInput) -> uuid.UUID:
        """
        Create a QUEUED job for a keyword and move the keyword to RESEARCHING.

        Quota and authorization are the caller's responsibility.

        Raises:
            JobNotFoundError: If the keyword does not exist
            InvalidJobStateError: If the keyword already has an active job
        """
        db = self.session_factory()
        try:
            keyword = db.get(Keyword, job_input.keyword_id)
            if not keyword:
                raise JobNotFoundError(f"Keyword {job_input.keyword_id} not found")

            # Conditional update: only one enqueue can claim the keyword
            claimed = (
                db.query(Keyword)
                .filter(Keyword.id == keyword.id, Keyword.status.in_(ENQUEUEABLE_KEYWORD_STATUSES))
                .update({Keyword.status: "RESEARCHING"}, synchronize_session=False)
            )
            if not claimed:
                db.rollback()
                raise InvalidJobStateError(f"Keyword '{job_input.keyword}' already has an active job")

            job = Job(
                type="BLOG_GENERATION",
                status="QUEUED",
                progress=0,
                input=job_input.model_dump(mode="json"),
                website_id=job_input.website_id,
                keyword_id=job_input.keyword_id,
            )
            db.add(job)
            db.commit()

            logger.info(f"Enqueued job {job.id} for keyword '{job_input.keyword}'")
            return job.id
        finally:
            db.close()

    def next_queued_job_id(self) -> Optional[uuid.UUID]:
        """Id of the oldest QUEUED job, if any."""
        db = self.session_factory()
        try:
            row = (
                db.query(Job.id)
                .filter(Job.status == "QUEUED")
                .order_by(Job.created_at)
                .first()
            )
            return row[0] if row else None
        finally:
            db.close()

    def process(self, job_id: uuid.UUID) -> bool:
        """
        Run the pipeline for a QUEUED job.

        The QUEUED -> PROCESSING transition is a conditional update, so only one
        caller can lease a job; any other call returns immediately.

        Returns:
            True if this call leased and ran the job, False if it was not QUEUED
        """
        db = self.session_factory()
        try:
            leased = (
                db.query(Job)
                .filter(Job.id == job_id, Job.status == "QUEUED")
                .update(
                    {
                        Job.status: "PROCESSING",
                        Job.started_at: datetime.utcnow(),
                        Job.current_step: "research",
                        Job.progress: 0,
                    },
                    synchronize_session=False,
                )
            )
            db.commit()

            if not leased:
                logger.info(f"Job {job_id} is not queued, skipping")
                return False

            job = db.get(Job, job_id)
            job_input = JobInput(**job.input)
            logger.info(f"Processing job {job_id} (keyword: '{job_input.keyword}')")

            try:
                article = self._run_pipeline(db, job, job_input)
                post_id = self._complete(db, job_id, job_input, article)
            except JobReclaimedError as e:
                logger.warning(str(e))
                db.rollback()
                return True
            except Exception as e:
                logger.error(f"Job {job_id} failed: {e}", exc_info=True)
                db.rollback()
                self._mark_failed(db, job_id, job_input, str(e))
                return True

            if post_id and job_input.auto_publish:
                self._fire_publish_hook(post_id)
            return True
        finally:
            db.close()

    def _run_pipeline(self, db: Session, job: Job, job_input: JobInput) -> GeneratedArticle:
        """Load website context and run the pipeline with persisted progress."""
        job_id = job.id
        website = db.get(Website, job_input.website_id)
        if not website:
            raise ValueError("Website not found")

        base_url = blog_base_url(website)
        published = (
            db.query(BlogPost)
            .filter(BlogPost.website_id == website.id, BlogPost.status == "PUBLISHED")
            .order_by(BlogPost.published_at.desc())
            .limit(EXISTING_POSTS_LIMIT)
            .all()
        )
        existing_posts = [
            ExistingPost(title=p.title, slug=p.slug, url=f"{base_url}/{p.slug}", focus_keyword=p.focus_keyword or "")
            for p in published
        ]
        context = build_website_context(website, existing_posts)

        def on_progress(progress: GenerationProgress):
            # Progress is only written while this call still holds the lease
            updated = (
                db.query(Job)
                .filter(Job.id == job_id, Job.status == "PROCESSING")
                .update(
                    {Job.current_step: progress.step, Job.progress: progress.percentage},
                    synchronize_session=False,
                )
            )
            if not updated:
                db.rollback()
                raise JobReclaimedError(f"Job {job_id} was reclaimed during {progress.step}, stopping")
            if progress.step in ("draft", "tone"):
                db.query(Keyword).filter(Keyword.id == job_input.keyword_id).update(
                    {Keyword.status: "GENERATING"}, synchronize_session=False
                )
            db.commit()

        options = GenerationOptions(
            content_length=job_input.content_length,
            include_images=job_input.include_images,
            include_faq=job_input.include_faq,
            include_toc=job_input.include_toc,
        )
        return self.pipeline.generate(
            job_input.keyword,
            context,
            options,
            on_progress=on_progress,
            model=website.preferred_model or None,
        )

    def _complete(
        self, db: Session, job_id: uuid.UUID, job_input: JobInput, article: GeneratedArticle
    ) -> Optional[uuid.UUID]:
        """Persist the article and mark the job COMPLETED. Returns the post id."""
        now = datetime.utcnow()
        for attempt in range(1, SLUG_ATTEMPTS + 1):
            job = db.get(Job, job_id)
            db.refresh(job)
            if job.status != "PROCESSING":
                # Reclaimed by the stuck-job sweep while the pipeline was running
                logger.warning(f"Job {job_id} is {job.status}, discarding generated article")
                return None

            slug = unique_slug(db, job_input.website_id, article.slug)
            post = _build_post(job_input, article, slug, now)
            db.add(post)
            try:
                db.flush()
                break
            except IntegrityError:
                # Another job inserted the same slug after it was resolved
                db.rollback()
                if attempt == SLUG_ATTEMPTS:
                    raise
                logger.warning(f"Slug '{slug}' was taken concurrently, resolving again (job {job_id})")

        website = db.get(Website, job_input.website_id)

        keyword = db.get(Keyword, job_input.keyword_id)
        if keyword:
            keyword.status = "COMPLETED"
            keyword.blog_post_id = post.id
            keyword.error_message = None

        job.status = "COMPLETED"
        job.progress = 100
        job.current_step = "done"
        job.blog_post_id = post.id
        job.output = {"blog_post_id": str(post.id), "title": post.title, "slug": slug}
        job.completed_at = now

        if website:
            db.query(Subscription).filter(Subscription.organization_id == website.organization_id).update(
                {Subscription.posts_generated_this_month: Subscription.posts_generated_this_month + 1},
                synchronize_session=False,
            )

        db.commit()
        logger.info(f"Job {job_id} completed: post {post.id} ({slug}, {article.word_count} words)")
        return post.id

    def _mark_failed(self, db: Session, job_id: uuid.UUID, job_input: JobInput, message: str):
        """Mark the job and its keyword FAILED."""
        error = (message or "Generation failed")[: settings.JOB_ERROR_MAX_LENGTH]

        job = db.get(Job, job_id)
        if job and job.status == "PROCESSING":
            job.status = "FAILED"
            job.error = error
            job.completed_at = datetime.utcnow()

            keyword = db.get(Keyword, job_input.keyword_id)
            if keyword:
                keyword.status = "FAILED"
                keyword.error_message = error
                keyword.retry_count = (keyword.retry_count or 0) + 1

        db.commit()

    def _fire_publish_hook(self, post_id: uuid.UUID):
        """Run the publish hook in a daemon thread; its outcome never affects the job."""

        def _run():
            try:
                self.publish_hook(post_id, "auto")
            except Exception as e:
                logger.error(f"Publish hook failed for post {post_id}: {e}", exc_info=True)

        threading.Thread(target=_run, daemon=True, name=f"publish-{post_id}").start()

    def recover_stuck_jobs(self) -> int:
        """
        Fail PROCESSING jobs whose lease expired and free their keywords.

        Returns:
            Number of jobs recovered
        """
        cutoff = datetime.utcnow() - self.lease_timeout
        db = self.session_factory()
        try:
            stuck = (
                db.query(Job)
                .filter(Job.status == "PROCESSING", Job.started_at < cutoff)
                .all()
            )
            for job in stuck:
                job.status = "FAILED"
                job.error = TIMEOUT_ERROR
                job.completed_at = datetime.utcnow()
                if job.keyword_id:
                    keyword = db.get(Keyword, job.keyword_id)
                    if keyword:
                        keyword.status = "PENDING"
                logger.warning(f"Recovered stuck job {job.id} (started {job.started_at})")

            db.commit()
            return len(stuck)
        finally:
            db.close()

    def retry(self, job_id: uuid.UUID) -> uuid.UUID:
        """
        Replace a FAILED job with a fresh QUEUED one built from the same input.

        Raises:
            JobNotFoundError: If the job does not exist
            InvalidJobStateError: If the job is not FAILED or its keyword already has an active job
        """
        db = self.session_factory()
        try:
            job = db.get(Job, job_id)
            if not job:
                raise JobNotFoundError(f"Job {job_id} not found")
            if job.status != "FAILED":
                raise InvalidJobStateError(f"Only failed jobs can be retried (job is {job.status})")

            job_input = JobInput(**job.input)
            active = (
                db.query(Job.id)
                .filter(Job.keyword_id == job_input.keyword_id, Job.status.in_(ACTIVE_STATUSES))
                .first()
            )
            if active:
                raise InvalidJobStateError("Keyword already has an active job")

            keyword = db.get(Keyword, job_input.keyword_id)
            if keyword:
                keyword.status = "PENDING"
            db.delete(job)
            db.commit()
            logger.info(f"Retrying failed job {job_id} for keyword '{job_input.keyword}'")
        finally:
            db.close()

        return self.enqueue(job_input)

    def dismiss(self, job_id: uuid.UUID):
        """
        Delete a terminal job row. The keyword is left untouched.

        Raises:
            JobNotFoundError: If the job does not exist
            InvalidJobStateError: If the job is still active
        """
        db = self.session_factory()
        try:
            job = db.get(Job, job_id)
            if not job:
                raise JobNotFoundError(f"Job {job_id} not found")
            if job.status not in TERMINAL_STATUSES:
                raise InvalidJobStateError(f"Cannot dismiss a {job.status} job")
            db.delete(job)
            db.commit()
        finally:
            db.close()

    def get_status(self, job_id: uuid.UUID) -> JobStatus:
        """
        Current status of a job.

        Raises:
            JobNotFoundError: If the job does not exist
        """
        db = self.session_factory()
        try:
            job = db.get(Job, job_id)
            if not job:
                raise JobNotFoundError(f"Job {job_id} not found")
            return _job_status(job)
        finally:
            db.close()

    def list_website_jobs(self, website_id: uuid.UUID) -> List[JobStatus]:
        """Active jobs plus jobs that failed within the last hour, newest first."""
        failed_since = datetime.utcnow() - timedelta(hours=RECENT_FAILURE_HOURS)
        db = self.session_factory()
        try:
            jobs = (
                db.query(Job)
                .filter(
                    Job.website_id == website_id,
                    or_(
                        Job.status.in_(ACTIVE_STATUSES),
                        and_(Job.status == "FAILED", Job.completed_at >= failed_since),
                    ),
                )
                .order_by(Job.created_at.desc())
                .limit(WEBSITE_JOBS_LIMIT)
                .all()
            )
            return [_job_status(job) for job in jobs]
        finally:
            db.close()

    def check_generation_limit(self, website_id: uuid.UUID) -> GenerationLimit:
        """Compare the organization's monthly usage with its plan limit."""
        db = self.session_factory()
        try:
            website = db.get(Website, website_id)
            if not website:
                return GenerationLimit(allowed=False, reason="Website not found")

            sub = (
                db.query(Subscription)
                .filter(Subscription.organization_id == website.organization_id)
                .first()
            )
            if not sub:
                return GenerationLimit(allowed=True)

            if sub.posts_generated_this_month >= sub.max_posts_per_month:
                return GenerationLimit(
                    allowed=False,
                    reason=(
                        f"You've used all {sub.max_posts_per_month} posts for this month on the "
                        f"{sub.plan} plan. Upgrade to generate more."
                    ),
                    remaining=0,
                )
            return GenerationLimit(
                allowed=True,
                remaining=sub.max_posts_per_month - sub.posts_generated_this_month,
            )
        finally:
            db.close()


def _job_status(job: Job) -> JobStatus:
    return JobStatus(
        id=job.id,
        status=job.status,
        current_step=job.current_step,
        progress=job.progress or 0,
        error=job.error,
        keyword=(job.input or {}).get("keyword"),
        blog_post_id=job.blog_post_id,
        output=job.output,
        created_at=job.created_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
    )


def _build_post(job_input: JobInput, article: GeneratedArticle, slug: str, now: datetime) -> BlogPost:
    return BlogPost(
        website_id=job_input.website_id,
        title=article.title,
        slug=slug,
        content=article.content,
        excerpt=article.excerpt,
        meta_title=article.meta_title,
        meta_description=article.meta_description,
        focus_keyword=article.focus_keyword,
        secondary_keywords=article.secondary_keywords,
        featured_image=article.featured_image_url,
        featured_image_alt=article.featured_image_alt,
        structured_data=article.structured_data,
        social_captions=article.social_captions.model_dump(),
        word_count=article.word_count,
        reading_time=article.reading_time,
        tags=article.tags,
        category=article.category,
        status="PUBLISHED" if job_input.auto_publish else "REVIEW",
        published_at=now if job_input.auto_publish else None,
        generated_by="ai",
        ai_model=article.model,
        research_data=article.research_data.model_dump() if article.research_data else None,
        generation_steps={
            "completed": True,
            "version": article.version_label,
            "word_counts": article.stage_word_counts,
        },
    )
