"""Outline agent: turns research into a structured article plan."""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from autoblog.agents.base import BaseAgent
from autoblog.agents.prompts import build_system_prompt, is_comparison_keyword
from autoblog.config import settings
from autoblog.schemas.agents import OutlineInput
from autoblog.schemas.pipeline import Outline
from autoblog.services.llm_client import LLMResponseError

logger = logging.getLogger(__name__)


def _numbered(items, limit: int) -> str:
    return "\n".join(f"{i + 1}. {item}" for i, item in enumerate(items[:limit]))


def _bulleted(items, limit: int) -> str:
    return "\n".join(f"- {item}" for item in items[:limit])


class OutlineAgent(BaseAgent):
    """Agent for generating the article outline."""

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Generate an outline from keyword research."""
        input_data = OutlineInput(**payload)
        ctx = input_data.context
        research = input_data.research
        keyword = input_data.keyword
        target_words = settings.WORD_TARGETS.get(input_data.content_length, settings.WORD_TARGETS["MEDIUM"])

        gaps = _numbered(research.content_gaps, 6) or "- Cover more specific, actionable advice than generic guides"
        rules = [
            "- H1 title: SEO-optimized (50-70 chars), includes the keyword, reflects the winning angle",
            "- 5-7 H2 sections, at least 2 of them directly addressing the content gaps above",
            "- Each section: 3-4 bullet points showing exactly what will be covered",
            "- Vary section types: how-to, comparison table, case study, data breakdown, common mistakes",
            '- Include a "Key Takeaways" section near the top',
        ]
        if is_comparison_keyword(keyword):
            rules.append(
                f'- MANDATORY COMPARISON TABLE: "{keyword}" is a comparison article. Include a dedicated section '
                "in 2nd or 3rd position (e.g. \"Side-by-Side Comparison\") whose points specify a markdown table "
                "comparing the main options by price, ease of use, best fit and key features."
            )
        if input_data.include_faq:
            rules.append("- Include a FAQ section answering the questions competitors ignore")
        if ctx.required_sections:
            rules.append(f"- MUST include these sections: {', '.join(ctx.required_sections)}")
        rules.append(f"- Conclusion: CTA for {ctx.brand_name}")

        prompt = f"""Create a detailed blog post outline for the keyword: "{keyword}"

## Brand Context
- Brand: {ctx.brand_name} ({ctx.niche})
- Target audience: {ctx.target_audience}
- Target word count: {target_words} words

## What Competitors Are Missing (these gaps must become sections or deep sub-points)
{gaps}
{_bulleted(research.missing_subtopics, 4)}

## Winning Angle
{research.suggested_angle or "Take a more specific, practitioner-level perspective than generic overviews"}

## Questions People Ask
{_bulleted(research.common_questions, 5)}

## Key Statistics
{_bulleted(research.key_statistics, 4)}

## Research Summary
{research.raw_research[:2500]}

## Outline Rules
{chr(10).join(rules)}

Return JSON: {{"title": "...", "sections": [{{"heading": "...", "points": ["..."]}}], "unique_angle": "..."}}
"""

        result = self.llm.complete_json(prompt, system_prompt=build_system_prompt(ctx), model=self.model)
        if not isinstance(result, dict):
            raise LLMResponseError("Outline response is not a JSON object")

        try:
            outline = Outline(**result)
        except ValidationError as e:
            raise LLMResponseError(f"Outline response has invalid shape: {e}") from e

        logger.info(f"Outline for '{keyword}': {len(outline.sections)} sections, title '{outline.title}'")
        return outline.model_dump()

    def _validate(self, result: Dict[str, Any]) -> bool:
        """Validate outline has a title and sections."""
        return bool(result.get("title")) and len(result.get("sections", [])) > 0
