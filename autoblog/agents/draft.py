"""Draft agent: single-shot article body with a section-by-section fallback."""

import logging
import math
from typing import Any, Dict, List

from autoblog.agents.base import BaseAgent
from autoblog.agents.prompts import BANNED_PHRASES, build_system_prompt, is_comparison_keyword
from autoblog.config import settings
from autoblog.schemas.agents import DraftInput, DraftOutput
from autoblog.schemas.pipeline import Outline
from autoblog.services.deduplicator import deduplicate
from autoblog.services.text_utils import count_words
from autoblog.services.validators import content_sections, find_missing_sections

logger = logging.getLogger(__name__)

DRAFT_TEMPERATURE = 0.8


def _outline_markdown(outline: Outline) -> str:
    return "\n\n".join(
        f"## {s.heading}\n" + "\n".join(f"- {p}" for p in s.points)
        for s in outline.sections
    )


class DraftAgent(BaseAgent):
    """Agent for writing the full article draft."""

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Write the draft, falling back to per-section generation when it fails the quality gate."""
        input_data = DraftInput(**payload)
        length = input_data.content_length
        target_words = settings.WORD_TARGETS.get(length, settings.WORD_TARGETS["MEDIUM"])
        min_words = settings.MIN_DRAFT_WORDS.get(length, settings.MIN_DRAFT_WORDS["MEDIUM"])
        max_tokens = settings.DRAFT_MAX_TOKENS.get(length, settings.DRAFT_MAX_TOKENS["MEDIUM"])
        system_prompt = build_system_prompt(input_data.context)

        required = content_sections([s.heading for s in input_data.outline.sections])

        result = self.llm.complete(
            self._build_prompt(input_data, target_words),
            system_prompt=system_prompt,
            temperature=DRAFT_TEMPERATURE,
            max_tokens=max_tokens,
            model=self.model,
        )
        draft = deduplicate(result.text)
        words = count_words(draft)
        missing = find_missing_sections(draft, required)
        truncated = result.truncated

        output = DraftOutput(content=draft, word_count=words, truncated=truncated, missing_sections=missing)

        if words < min_words or len(missing) >= settings.MISSING_SECTIONS_FALLBACK_THRESHOLD or truncated:
            logger.warning(
                f"Draft failed quality gate: {words} words (min {min_words}), "
                f"{len(missing)} missing sections, truncated={truncated}. Generating section by section"
            )
            stitched = self._generate_by_section(input_data, required, target_words, system_prompt)
            stitched_words = count_words(stitched)
            if stitched_words > words:
                logger.info(f"Using section-by-section draft: {stitched_words} words vs {words}")
                output = DraftOutput(
                    content=stitched,
                    word_count=stitched_words,
                    truncated=False,
                    missing_sections=find_missing_sections(stitched, required),
                    used_section_fallback=True,
                )
            else:
                logger.warning(f"Section-by-section draft not longer ({stitched_words} words), keeping original")

        return output.model_dump()

    def _validate(self, result: Dict[str, Any]) -> bool:
        """Validate the draft is not empty."""
        return result.get("word_count", 0) > 0

    def _build_prompt(self, input_data: DraftInput, target_words: str) -> str:
        ctx = input_data.context
        research = input_data.research
        keyword = input_data.keyword
        outline = input_data.outline

        structure = [
            "- Open with the HOOK (a specific, relatable scenario)",
            "- Key Takeaways box (bulleted, 4-5 points)",
        ]
        if input_data.include_toc:
            structure.append("- Table of Contents linking to the H2 sections, matching the H2 headings character for character")
        else:
            structure.append("- Do NOT include a Table of Contents")
        structure.append("- Main sections following the outline, each as an H2 with the exact outline heading")
        if is_comparison_keyword(keyword):
            structure.append(
                "- MANDATORY: a markdown comparison table early in the article comparing all main options "
                "(| Option | Best For | Price | Ease of Use | Key Feature |)"
            )
        if input_data.include_faq:
            structure.append("- FAQ section (4-5 questions with detailed answers)")
        structure.append(f"- Conclusion with CTA for {ctx.brand_name}")

        gaps = "\n".join(f"{i + 1}. {g}" for i, g in enumerate(research.content_gaps[:5]))

        return f"""Write a complete, {target_words}-word blog post about "{keyword}" for {ctx.brand_name}.

Title: {outline.title}
Unique angle: {outline.unique_angle}

Outline to follow:
{_outline_markdown(outline)}

## Content Gaps to Fill
{gaps}

## Research Data
{research.raw_research[:3500]}

## Structure
{chr(10).join(structure)}

## Content rules
- Write {target_words} words
- Vary the internal structure of sections: prose, bullet lists, numbered steps, tables
- Include real statistics from the research with context
- Use the keyword "{keyword}" in the first 100 words, one H2, and the conclusion
- At most 2 "Pro Tip:" callouts in the whole article
- Keep every paragraph under {settings.PARAGRAPH_MAX_WORDS} words
- NEVER use: {BANNED_PHRASES}

Output ONLY the blog post content in Markdown. Do not include the title as an H1; start with the hook paragraph."""

    def _generate_by_section(
        self,
        input_data: DraftInput,
        sections: List[str],
        target_words: str,
        system_prompt: str,
    ) -> str:
        """Generate the intro and each content section independently and stitch them."""
        ctx = input_data.context
        keyword = input_data.keyword
        outline = input_data.outline
        points_by_heading = {s.heading: s.points for s in outline.sections}

        upper_target = int(target_words.split("-")[-1])
        words_per_section = math.ceil(upper_target / max(1, len(sections)))

        toc_instruction = ""
        if input_data.include_toc:
            toc_lines = "\n".join(f"- {h}" for h in sections)
            toc_instruction = f"\n3. A \"## Table of Contents\" with markdown anchor links to these headings, exactly as written:\n{toc_lines}"

        intro_prompt = f"""Write the opening of a blog post about "{keyword}" for {ctx.brand_name}.

Title: {outline.title}
Unique angle: {outline.unique_angle}

Write ONLY:
1. A hook of 2-3 short paragraphs that drops the reader into a specific, relatable situation
2. A "## Key Takeaways" section with 4-5 bullets{toc_instruction}

Do not write any other sections. Output Markdown only."""

        intro = self.llm.complete(
            intro_prompt,
            system_prompt=system_prompt,
            temperature=DRAFT_TEMPERATURE,
            max_tokens=settings.SECTION_MAX_TOKENS,
            model=self.model,
        )
        parts = [deduplicate(intro.text).strip()]

        for heading in sections:
            points = "\n".join(f"- {p}" for p in points_by_heading.get(heading, []))
            section_prompt = f"""Write one section of a blog post about "{keyword}" titled "{outline.title}".

Section heading: {heading}
Points to cover:
{points}

Rules:
- Start with the line "## {heading}" exactly
- About {words_per_section} words
- Keep every paragraph under {settings.PARAGRAPH_MAX_WORDS} words
- Do not write an introduction or conclusion for the whole article
- NEVER use: {BANNED_PHRASES}

Output Markdown only."""

            result = self.llm.complete(
                section_prompt,
                system_prompt=system_prompt,
                temperature=DRAFT_TEMPERATURE,
                max_tokens=settings.SECTION_MAX_TOKENS,
                model=self.model,
            )
            text = deduplicate(result.text).strip()
            if not text.startswith("## "):
                text = f"## {heading}\n\n{text}"
            parts.append(text)

        return deduplicate("\n\n".join(p for p in parts if p))
