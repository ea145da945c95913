"""Metadata agent: SEO fields, social captions and structured data."""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from autoblog.agents.base import BaseAgent
from autoblog.schemas.agents import MetadataInput
from autoblog.schemas.pipeline import ArticleMetadata
from autoblog.services.llm_client import LLMResponseError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an SEO specialist and social media expert. Return valid JSON only."


class MetadataAgent(BaseAgent):
    """Agent for generating article metadata."""

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Generate metadata for the finished article."""
        input_data = MetadataInput(**payload)
        ctx = input_data.context
        keyword = input_data.keyword

        prompt = f"""Generate SEO metadata and social media captions for this blog post about "{keyword}" for {ctx.brand_name} ({ctx.brand_url}).

## Blog Post:
{input_data.content[:3000]}

Return a JSON object with this exact structure:
{{
  "title": "Compelling blog title (50-70 chars, include keyword)",
  "slug": "url-friendly-slug-with-keyword (lowercase, hyphens, at most 60 chars)",
  "excerpt": "2-3 sentence summary for preview cards (160-200 chars)",
  "meta_title": "SEO title tag (under 60 chars, keyword near front)",
  "meta_description": "SEO meta description (120-155 chars, include keyword and a call to action)",
  "secondary_keywords": ["keyword1", "keyword2", "keyword3", "keyword4", "keyword5"],
  "category": "Single category name relevant to {ctx.niche}",
  "tags": ["tag1", "tag2", "tag3", "tag4"],
  "twitter_caption": "Tweet under 280 chars with hashtags",
  "linkedin_caption": "Professional LinkedIn post (2-3 paragraphs)",
  "instagram_caption": "Instagram caption with hashtags",
  "facebook_caption": "Facebook post (2-3 sentences, conversational)",
  "structured_data": {{"@context": "https://schema.org", "@type": "Article", "headline": "...", "description": "...", "author": {{"@type": "Organization", "name": "{ctx.brand_name}"}}}},
  "featured_image_alt": "Descriptive alt text for the featured image (includes keyword)"
}}"""

        result = self.llm.complete_json(prompt, system_prompt=SYSTEM_PROMPT, model=self.model)
        if not isinstance(result, dict):
            raise LLMResponseError("Metadata response is not a JSON object")

        try:
            metadata = ArticleMetadata(**result)
        except ValidationError as e:
            raise LLMResponseError(f"Metadata response has invalid shape: {e}") from e

        logger.info(f"Metadata generated for '{keyword}': slug '{metadata.slug}'")
        return metadata.model_dump()
