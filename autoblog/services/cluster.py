"""Topic cluster suggestions: one pillar keyword plus supporting long-tail keywords."""

import logging
from typing import List, Optional

from pydantic import ValidationError

from autoblog.config import settings
from autoblog.schemas.pipeline import ClusterSuggestion, ExistingPost, WebsiteContext
from autoblog.services.crawler import CrawlService
from autoblog.services.llm_client import LLMClient, LLMResponseError
from autoblog.services.research import ResearchService

logger = logging.getLogger(__name__)

MAX_SITE_PAGES = 30
MAX_EXISTING_KEYWORDS = 40
MAX_PUBLISHED_POSTS = 60
MAX_RESEARCH_CHARS = 4000


def ensure_single_pillar(suggestion: ClusterSuggestion) -> ClusterSuggestion:
    """Make the first keyword the pillar unless exactly one pillar is already marked."""
    keywords = suggestion.keywords
    if not keywords:
        return suggestion
    if sum(1 for k in keywords if k.role == "pillar") != 1:
        for index, keyword in enumerate(keywords):
            keyword.role = "pillar" if index == 0 else "supporting"
    return suggestion


class ClusterGenerator:
    """Researches a seed topic and asks the text service for a cluster of keywords."""

    def __init__(
        self,
        llm_client: LLMClient,
        research_service: Optional[ResearchService] = None,
        crawler: Optional[CrawlService] = None,
        model: Optional[str] = None,
    ):
        self.llm = llm_client
        self.research_service = research_service or ResearchService()
        self.crawler = crawler or CrawlService()
        self.model = model

    def _research_seed(self, seed_topic: str, context: WebsiteContext) -> str:
        """Research text for the seed topic; falls back to site pages or a one-line topic."""
        crawl = self.crawler.crawl(context.brand_url)
        site_context = ""
        if crawl.pages:
            site_context = "\n\nPages found on the website:\n" + "\n".join(
                f"- {p.title}: {p.url}" for p in crawl.pages[:MAX_SITE_PAGES]
            )
        fallback = site_context or f"Topic: {seed_topic} for {context.brand_name} in {context.niche}."

        niche = context.niche
        extra_lines = []
        if context.competitors:
            extra_lines.append(
                f"Known competitors: {', '.join(context.competitors)}. Analyze how they cover this topic."
            )
        if context.key_products:
            extra_lines.append(f"Key products/features: {', '.join(context.key_products)}.")
        if context.target_location:
            extra_lines.append(f"Primary market: {context.target_location}.")
        extra = "".join(f"\n{line}" for line in extra_lines)

        system_prompt = (
            f"You are an SEO content strategist specializing in the {niche} niche. Only provide research "
            f"directly relevant to the {niche} industry and {context.brand_name}'s target audience. "
            "Do not suggest off-topic or generic content."
        )
        prompt = f"""Research the topic "{seed_topic}" for a content cluster for {context.brand_name} ({context.brand_url}), which is a {niche} business.
Target audience: {context.target_audience}{extra}

I need:
1. Top ranking articles specifically about "{seed_topic}" in the context of {niche}, with the angles they cover
2. 15-20 long-tail keyword variations of "{seed_topic}" that are relevant to {niche}
3. Specific subtopics that top-ranking pages cover for this niche
4. Common questions {niche} audiences ask about "{seed_topic}"
5. Content gaps: what are competitors missing about "{seed_topic}" in the {niche} space?

Stay strictly within the {niche} niche."""

        research = self.research_service.query(
            system_prompt, prompt, temperature=0.1, timeout=settings.CLUSTER_RESEARCH_TIMEOUT_SECONDS
        )
        if not research.strip():
            return fallback
        return research + site_context

    def _build_prompt(
        self,
        seed_topic: str,
        context: WebsiteContext,
        research: str,
        existing_keywords: List[str],
        published_posts: List[ExistingPost],
    ) -> str:
        sections = []
        if existing_keywords:
            sections.append(
                "## Keywords Already in Queue (NEVER duplicate these):\n"
                + ", ".join(existing_keywords[:MAX_EXISTING_KEYWORDS])
            )
        if published_posts:
            sections.append(
                "## Already Published Blog Posts (NEVER duplicate these titles, topics, or search intent):\n"
                + "\n".join(
                    f'- "{p.title}"' + (f" [keyword: {p.focus_keyword}]" if p.focus_keyword else "")
                    for p in published_posts[:MAX_PUBLISHED_POSTS]
                )
            )
        if context.avoid_topics:
            sections.append(
                "## Excluded Topics (NEVER suggest keywords about these):\n"
                + "\n".join(f"- {t}" for t in context.avoid_topics)
            )

        business_lines = [
            f"- Brand: {context.brand_name} ({context.brand_url})",
            f"- Niche: {context.niche}",
            f"- Description: {context.description}",
            f"- Target audience: {context.target_audience}",
            f"- USP: {context.unique_value_prop}" if context.unique_value_prop else "",
            f"- Competitors: {', '.join(context.competitors)}" if context.competitors else "",
            f"- Products/Features: {', '.join(context.key_products)}" if context.key_products else "",
            f"- Primary market: {context.target_location}" if context.target_location else "",
        ]
        business = "\n".join(line for line in business_lines if line)

        product_rule = ""
        if context.key_products:
            product_rule = (
                f"\n- Product names ({', '.join(context.key_products)}) MAY appear in keywords where the "
                "search intent naturally includes the product. Do NOT force them into every keyword."
            )

        extra = "".join(f"\n\n{section}" for section in sections)

        return f"""You are an SEO content strategist for {context.brand_name}, a {context.niche} business. Create a topic cluster for "{seed_topic}".

## Business Context:
{business}

## Research Data:
{research[:MAX_RESEARCH_CHARS]}{extra}

## ANTI-CANNIBALIZATION RULES (most important):
- Review the published posts list above CAREFULLY before generating any keyword
- Do NOT generate keywords that target the same TOPIC as an existing post, even if worded differently
- Do NOT generate keywords that target the same SEARCH INTENT as an existing post
- Each new keyword must fill a GAP that no existing post covers

## KEYWORD QUALITY RULES:
- Every keyword MUST relate directly to "{seed_topic}" within {context.niche}
- Target LONG-TAIL, LOW-COMPETITION keywords (4-7 words each)
- All keywords must be things {context.target_audience or "the audience"} would actually search for
- Do NOT suggest generic 1-2 word head terms{product_rule}

## OUTPUT STRUCTURE:
- Pillar: ONE broad keyword about "{seed_topic}" (2500-4000 words, 4-6 words long)
- Supporting: 8-12 specific long-tail variations (1200-2000 words each, 5-8 words long)
- Mix search intents: ~60% informational, ~25% commercial, ~15% transactional
- For each keyword, write a short "description" of the unique angle it covers

Return JSON in this shape:
{{
  "pillar_title": "cluster theme name",
  "description": "1-2 sentence description of this cluster",
  "keywords": [
    {{
      "keyword": "exact keyword phrase",
      "role": "pillar",
      "search_intent": "informational",
      "suggested_word_count": 3000,
      "description": "what this article covers"
    }}
  ]
}}"""

    def generate(
        self,
        seed_topic: str,
        context: WebsiteContext,
        existing_keywords: Optional[List[str]] = None,
        published_posts: Optional[List[ExistingPost]] = None,
        model: Optional[str] = None,
    ) -> ClusterSuggestion:
        """
        Suggest a topic cluster for a seed topic.

        Args:
            seed_topic: Broad topic to build the cluster around
            context: Brand context; avoid_topics are excluded from suggestions
            existing_keywords: Keywords already queued for the website
            published_posts: Published posts whose topics must not be duplicated
            model: Model override for this call

        Returns:
            ClusterSuggestion with exactly one pillar when any keywords are returned

        Raises:
            LLMResponseError: If the text service returns an unusable structure
        """
        research = self._research_seed(seed_topic, context)
        prompt = self._build_prompt(seed_topic, context, research, existing_keywords or [], published_posts or [])
        system_prompt = (
            f"You are an SEO content strategist for {context.brand_name} in the {context.niche} niche. "
            f'Every keyword must relate directly to "{seed_topic}".'
        )

        data = self.llm.complete_json(prompt, system_prompt=system_prompt, model=model or self.model)
        try:
            suggestion = ClusterSuggestion.model_validate(data)
        except ValidationError as e:
            raise LLMResponseError(f"Invalid cluster structure: {e}") from e

        suggestion = ensure_single_pillar(suggestion)
        logger.info(f"Cluster for '{seed_topic}': {len(suggestion.keywords)} keywords")
        return suggestion
