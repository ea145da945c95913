"""Keyword research via the Perplexity chat API, with a generic fallback."""

import logging
import re
from typing import List, Optional

import httpx

from autoblog.config import settings
from autoblog.schemas.pipeline import ResearchResult, WebsiteContext

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an SEO content researcher and competitor analyst. Provide comprehensive research with "
    "sources, statistics, competitor insights, and content gap analysis. Focus on actionable data "
    "that helps create content that outranks existing articles."
)

_SECTION_BREAK = re.compile(r"^#{1,3}\s|^\*\*[^*]+\*\*$")
_BULLET_PREFIX = re.compile(r"^[-*•\d.)\s]+")
_BULLET_LINE = re.compile(r"^[-*•]\s")


def extract_section(text: str, *keywords: str) -> List[str]:
    """
    Pull the lines under the first headings that mention any keyword.

    A heading is a line starting with ``#`` or ``**``. Collection stops at the
    next heading. When nothing matches, the first bullet lines of the whole
    text are returned instead.

    Args:
        text: Raw research text
        keywords: Lowercase heading keywords

    Returns:
        Up to 10 cleaned lines
    """
    lines = [line for line in text.split("\n") if line.strip()]
    results = []
    in_section = False

    for line in lines:
        lower = line.lower()
        if any(kw in lower for kw in keywords) and (lower.startswith("#") or lower.startswith("**")):
            in_section = True
            continue
        if in_section:
            if _SECTION_BREAK.match(line):
                in_section = False
                continue
            cleaned = _BULLET_PREFIX.sub("", line).strip()
            if len(cleaned) > 10:
                results.append(cleaned)

    if not results:
        bullets = [
            _BULLET_LINE.sub("", line).strip()
            for line in lines
            if _BULLET_LINE.match(line) and len(line.strip()) > 15
        ]
        return bullets[:8]

    return results[:10]


def fallback_research(keyword: str, context: WebsiteContext) -> ResearchResult:
    """Generic but structurally valid research used when the service is unavailable."""
    audience = context.target_audience or "readers"
    return ResearchResult(
        raw_research=(
            f'Research on "{keyword}" for {context.brand_name} in the {context.niche} space. '
            "Top articles cover basics, step-by-step guides, best practices, and common mistakes."
        ),
        top_ranking_content=(
            f'Top articles about "{keyword}" in the {context.niche} space typically cover the basics, '
            "step-by-step guides, best practices, and common mistakes to avoid."
        ),
        content_gaps=[
            "Lack of real-world examples and case studies",
            "Missing actionable tips for beginners",
            "No comparison of different approaches",
            "Outdated statistics and data",
        ],
        missing_subtopics=[
            f"How {keyword} specifically applies to {audience}",
            "Common mistakes that experts make (not just beginners)",
            "Cost/ROI breakdown that most guides skip",
        ],
        competitor_headings=[
            f"What is {keyword}?",
            f"Why {keyword} matters",
            f"How to get started with {keyword}",
            f"Best practices for {keyword}",
            "Common mistakes to avoid",
            "Frequently Asked Questions",
        ],
        key_statistics=[
            f"{audience} spend significant time researching this topic before making decisions",
        ],
        related_topics=[
            f"{keyword} for beginners",
            f"{keyword} best practices",
            f"{keyword} examples",
            f"{keyword} tools",
        ],
        common_questions=[
            f"What is {keyword}?",
            f"How does {keyword} work?",
            f"What are the best {keyword} strategies?",
            f"How much does {keyword} cost?",
        ],
        suggested_angle=(
            f"Focus on practical, actionable advice specifically tailored for {audience}, "
            f"with real examples from the {context.niche} industry."
        ),
        is_fallback=True,
    )


class ResearchService:
    """Competitor and content-gap research for a keyword."""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = (api_key if api_key is not None else settings.PERPLEXITY_API_KEY).strip()
        self.base_url = settings.PERPLEXITY_BASE_URL
        self.model = settings.RESEARCH_MODEL
        self.timeout = timeout or settings.RESEARCH_TIMEOUT_SECONDS

    def _build_prompt(self, keyword: str, context: WebsiteContext) -> str:
        brand_lines = [
            f"The blog is for {context.brand_name}, a {context.niche} platform targeting {context.target_audience}.",
            f"Business: {context.description}" if context.description else "",
            f"USP: {context.unique_value_prop}" if context.unique_value_prop else "",
            f"Key competitors: {', '.join(context.competitors)}" if context.competitors else "",
            f"Products/features: {', '.join(context.key_products)}" if context.key_products else "",
            f"Primary market: {context.target_location}" if context.target_location else "",
            f"Brand tone: {context.tone}" if context.tone else "",
        ]
        brand_context = "\n".join(line for line in brand_lines if line)

        prompt = f"""Research this topic for an SEO blog post that will OUTRANK the current top results: "{keyword}".

{brand_context}

## PART 1 - COMPETITOR BLOG ANALYSIS
Look at the top 5-7 ranking articles for "{keyword}". For each one list the headline, the H2/H3 sections it
covers, what it oversimplifies, and which subtopics or questions it skips.

## PART 2 - CONTENT GAP IDENTIFICATION
- 5-8 specific subtopics or questions that none of the top articles cover well
- 3-5 questions people ask (Reddit, Quora, People Also Ask) that current articles ignore
- Outdated information we can update with recent data

## PART 3 - WINNING ANGLE
What single, specific angle would make our article clearly better than everything that ranks now?

## PART 4 - FACTUAL AMMUNITION
- 5-8 statistics with sources
- 3-5 real-world examples, case studies, or named tools to cite
"""
        if context.competitors:
            prompt += (
                f"\n## PART 5 - NAMED COMPETITOR BLOGS\n"
                f'Check how {", ".join(context.competitors)} cover "{keyword}" on their own blogs and what they avoid.\n'
            )
        return prompt

    def query(
        self,
        system_prompt: str,
        prompt: str,
        temperature: float = 0.2,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Single chat call against the research API.

        Returns:
            The answer text, or "" when the key is missing or the call fails
        """
        if not self.api_key:
            return ""

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": 4000,
            "temperature": temperature,
        }

        try:
            with httpx.Client(timeout=timeout or self.timeout) as client:
                response = client.post(
                    f"{self.base_url}/chat/completions",
                    headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                    json=payload,
                )
            if response.status_code >= 300:
                logger.error(f"Research API error {response.status_code}: {response.text[:200]}")
                return ""

            data = response.json()
            return ((data.get("choices") or [{}])[0].get("message") or {}).get("content") or ""
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Research request failed: {e}")
            return ""

    def research(self, keyword: str, context: WebsiteContext) -> ResearchResult:
        """
        Research a keyword. Never raises.

        Args:
            keyword: Target keyword
            context: Brand context

        Returns:
            Extracted research, or the generic fallback when unavailable
        """
        if not self.api_key:
            logger.info("Research API key not configured, using generic research")
            return fallback_research(keyword, context)

        raw = self.query(SYSTEM_PROMPT, self._build_prompt(keyword, context))
        if not raw.strip():
            logger.warning(f"No research returned for '{keyword}', using generic research")
            return fallback_research(keyword, context)

        return parse_research(raw)


def parse_research(raw: str) -> ResearchResult:
    """Split raw research text into structured fields."""
    angle = extract_section(raw, "winning angle", "unique angle", "contrarian", "underexplored", "part 3")
    return ResearchResult(
        raw_research=raw,
        top_ranking_content="\n".join(extract_section(raw, "competitor", "ranking", "top article", "part 1"))
        or raw[:1000],
        content_gaps=extract_section(raw, "content gap", "miss", "skip", "fail", "gap", "part 2"),
        missing_subtopics=extract_section(raw, "missing", "subtopic", "not covered", "ignore", "avoid", "nobody"),
        competitor_headings=extract_section(raw, "heading", "h2", "h3", "section", "cover"),
        key_statistics=extract_section(raw, "statistic", "data", "number", "percent", "%", "study", "part 4"),
        related_topics=extract_section(raw, "related", "subtopic", "also", "example"),
        common_questions=extract_section(raw, "question", "ask", "faq", "paa", "people also", "quora", "reddit"),
        suggested_angle=angle[0] if angle else "",
    )
