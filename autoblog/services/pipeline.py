"""Article generation pipeline: research -> outline -> draft -> tone -> seo -> metadata -> image."""

import logging
from typing import Callable, List, Optional

from pydantic import BaseModel

from autoblog.agents.draft import DraftAgent
from autoblog.agents.metadata import MetadataAgent
from autoblog.agents.outline import OutlineAgent
from autoblog.agents.seo import SeoAgent
from autoblog.agents.tone import ToneAgent
from autoblog.config import settings
from autoblog.schemas.pipeline import (
    ArticleMetadata,
    ExistingPost,
    GeneratedArticle,
    GenerationOptions,
    GenerationProgress,
    InternalLink,
    Outline,
    SocialCaptions,
    WebsiteContext,
)
from autoblog.services.images import ImageService
from autoblog.services.llm_client import LLMClient
from autoblog.services.postprocess import build_link_allowlist, post_process
from autoblog.services.research import ResearchService
from autoblog.services.text_utils import count_words, reading_time, slugify

logger = logging.getLogger(__name__)

STEPS = ["research", "outline", "draft", "tone", "seo", "metadata", "image"]

ProgressCallback = Callable[[GenerationProgress], None]


class Candidate(BaseModel):
    """One version of the article body in the draft -> tone -> seo chain."""

    label: str
    content: str
    word_count: int
    truncated: bool = False
    min_ratio: float = 0.0  # Minimum words relative to the previously accepted version


def select_best_version(candidates: List[Candidate]) -> Candidate:
    """
    Reduce the candidate chain to the version to publish.

    The first candidate is the validated draft and is always acceptable. Each
    later candidate replaces the current best only if it is not truncated and
    keeps at least min_ratio of the current best's words. If the result ends up
    below DRAFT_FLOOR_WORD_RATIO of the draft, the draft wins.

    Args:
        candidates: Draft first, then later rewrites in order

    Returns:
        The chosen candidate
    """
    draft = candidates[0]
    best = draft

    for candidate in candidates[1:]:
        if candidate.truncated:
            logger.warning(f"Rejecting {candidate.label} version: truncated, keeping {best.label}")
            continue
        floor = best.word_count * candidate.min_ratio
        if candidate.word_count < floor:
            logger.warning(
                f"Rejecting {candidate.label} version: {candidate.word_count} words "
                f"vs {best.word_count} in {best.label}, keeping {best.label}"
            )
            continue
        best = candidate

    if best.word_count < draft.word_count * settings.DRAFT_FLOOR_WORD_RATIO:
        logger.warning(
            f"{best.label} version has {best.word_count} words vs {draft.word_count} in draft, falling back to draft"
        )
        best = draft

    return best


def blog_base_url(website) -> str:
    """Public base URL for a website's posts."""
    if website.custom_domain:
        return f"https://{website.custom_domain.strip('/')}"
    return f"{settings.PUBLIC_BLOG_BASE_URL.rstrip('/')}/blog/{website.subdomain}"


def build_website_context(website, existing_posts: Optional[List[ExistingPost]] = None) -> WebsiteContext:
    """Build the prompt context from a Website row."""
    return WebsiteContext(
        id=str(website.id),
        brand_name=website.brand_name,
        brand_url=website.brand_url,
        niche=website.niche,
        target_audience=website.target_audience or "",
        tone=website.tone or "professional",
        description=website.description or "",
        existing_posts=existing_posts or [],
        internal_links=[InternalLink(**link) for link in (website.internal_links or [])],
        cta_text=website.cta_text,
        cta_url=website.cta_url,
        avoid_topics=website.avoid_topics or [],
        writing_style=website.writing_style,
        required_sections=website.required_sections or [],
        unique_value_prop=website.unique_value_prop,
        competitors=website.competitors or [],
        key_products=website.key_products or [],
        target_location=website.target_location,
    )


class PipelineController:
    """Runs the generation stages for one keyword."""

    def __init__(
        self,
        llm_client: LLMClient,
        research_service: Optional[ResearchService] = None,
        image_service: Optional[ImageService] = None,
    ):
        """Initialize the pipeline with its collaborators."""
        self.llm = llm_client
        self.research_service = research_service or ResearchService()
        self.image_service = image_service

    def generate(
        self,
        keyword: str,
        context: WebsiteContext,
        options: Optional[GenerationOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        model: Optional[str] = None,
    ) -> GeneratedArticle:
        """
        Generate a complete article.

        Args:
            keyword: Target keyword
            context: Brand context, existing posts and link targets
            options: Length class and feature switches
            on_progress: Called at the start of every stage
            model: Model for every text call; None uses the client default

        Returns:
            GeneratedArticle

        Raises:
            LLMResponseError: If a structured stage returns unusable output
            httpx.HTTPError: If the text service fails after retries
        """
        options = options or GenerationOptions()

        def progress(step: str, message: str):
            index = STEPS.index(step)
            logger.info(f"[{keyword}] {step}: {message}")
            if on_progress:
                on_progress(
                    GenerationProgress(
                        step=step,
                        step_index=index,
                        total_steps=len(STEPS),
                        message=message,
                        percentage=round((index + 1) / len(STEPS) * 100),
                    )
                )

        # Research
        progress("research", f'Researching "{keyword}"...')
        research = self.research_service.research(keyword, context)

        # Outline
        progress("outline", "Creating content outline and structure...")
        outline = Outline(
            **OutlineAgent(self.llm, model).execute(
                {
                    "keyword": keyword,
                    "context": context,
                    "research": research,
                    "content_length": options.content_length,
                    "include_faq": options.include_faq,
                }
            )
        )

        # Draft
        progress("draft", "Writing full article draft...")
        draft = DraftAgent(self.llm, model).execute(
            {
                "keyword": keyword,
                "context": context,
                "research": research,
                "outline": outline,
                "content_length": options.content_length,
                "include_faq": options.include_faq,
                "include_toc": options.include_toc,
            }
        )
        candidates = [Candidate(label="draft", content=draft["content"], word_count=draft["word_count"])]

        # Tone
        progress("tone", "Polishing voice...")
        tone = ToneAgent(self.llm, model).execute({"content": draft["content"], "context": context})
        candidates.append(Candidate(label="tone", min_ratio=settings.TONE_MIN_WORD_RATIO, **_rewrite_fields(tone)))

        # SEO, starting from whichever version survived the tone pass
        progress("seo", "Optimizing for SEO: keywords, links, structure...")
        links = build_link_allowlist(context.internal_links, context.existing_posts)
        seo_start = select_best_version(candidates)
        seo = SeoAgent(self.llm, model).execute(
            {
                "keyword": keyword,
                "content": seo_start.content,
                "context": context,
                "links": links,
                "content_length": options.content_length,
                "include_faq": options.include_faq,
            }
        )
        candidates.append(Candidate(label="seo", min_ratio=settings.SEO_MIN_WORD_RATIO, **_rewrite_fields(seo)))

        best = select_best_version(candidates)
        logger.info(f"[{keyword}] using {best.label} version ({best.word_count} words)")
        content = post_process(best.content, links, site_url=context.brand_url)

        # Metadata
        progress("metadata", "Generating SEO metadata, schema, and social captions...")
        metadata = ArticleMetadata(
            **MetadataAgent(self.llm, model).execute({"keyword": keyword, "content": content, "context": context})
        )
        slug = slugify(metadata.slug) or slugify(outline.title) or slugify(keyword)

        # Image
        featured_image_url = None
        featured_image_alt = metadata.featured_image_alt or keyword
        if options.include_images:
            if self.image_service and self.image_service.configured:
                progress("image", "Generating featured image...")
                featured_image_url = self._generate_image(keyword, outline.title, slug, context)
                if featured_image_url and not metadata.featured_image_alt:
                    featured_image_alt = f"{keyword} - {outline.title}"
            else:
                progress("image", "Skipping image generation (image service not configured)...")

        word_count = count_words(content)
        return GeneratedArticle(
            title=outline.title,
            slug=slug,
            content=content,
            excerpt=metadata.excerpt,
            meta_title=metadata.meta_title or outline.title,
            meta_description=metadata.meta_description,
            focus_keyword=keyword,
            secondary_keywords=metadata.secondary_keywords,
            featured_image_url=featured_image_url,
            featured_image_alt=featured_image_alt,
            structured_data=metadata.structured_data,
            social_captions=SocialCaptions(
                twitter=metadata.twitter_caption,
                linkedin=metadata.linkedin_caption,
                instagram=metadata.instagram_caption,
                facebook=metadata.facebook_caption,
            ),
            word_count=word_count,
            reading_time=reading_time(word_count),
            tags=metadata.tags,
            category=metadata.category or context.niche,
            research_data=research,
            model=model or self.llm.default_model,
            version_label=best.label,
            stage_word_counts={c.label: c.word_count for c in candidates},
        )

    def _generate_image(self, keyword: str, title: str, slug: str, context: WebsiteContext) -> Optional[str]:
        """Featured image URL, or None when generation fails."""
        prompt = (
            f'Create an image that directly represents the concept of "{keyword}" for a {context.niche} business. '
            f'The image should clearly relate to "{title}". No text, words, letters, or watermarks.'
        )
        try:
            return self.image_service.generate_featured(
                prompt, f"{slug}-featured", context.id, title=title, keyword=keyword, niche=context.niche
            )
        except Exception as e:
            logger.error(f"Featured image generation failed for '{keyword}': {e}", exc_info=True)
            return None


def _rewrite_fields(output: dict) -> dict:
    return {
        "content": output["content"],
        "word_count": output["word_count"],
        "truncated": output["truncated"],
    }
