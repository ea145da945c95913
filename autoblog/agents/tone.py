"""Tone agent: voice polish of the full draft."""

import logging
import math
from typing import Any, Dict

from autoblog.agents.base import BaseAgent
from autoblog.agents.prompts import BANNED_PHRASES, build_system_prompt
from autoblog.config import settings
from autoblog.schemas.agents import RewriteOutput, ToneInput
from autoblog.services.deduplicator import deduplicate
from autoblog.services.text_utils import count_words

logger = logging.getLogger(__name__)

TONE_TEMPERATURE = 0.65


def rewrite_max_tokens(word_count: int) -> int:
    """Completion budget for rewriting an article of word_count words."""
    return max(settings.MIN_REWRITE_MAX_TOKENS, math.ceil(word_count * 1.4 * 1.5))


class ToneAgent(BaseAgent):
    """Agent for polishing the draft's voice without changing its structure."""

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Rewrite the draft in the brand voice."""
        input_data = ToneInput(**payload)
        ctx = input_data.context
        words = count_words(input_data.content)

        prompt = f"""You are a senior editor. Take this blog draft and make it genuinely great to read.

Brand voice for {ctx.brand_name}: "{ctx.tone}"
Audience: {ctx.target_audience}

## Editing checklist
- If the opening sounds like every other article on this topic, rewrite it with a specific scene or question
- Keep at most 2 "Pro Tip:" callouts; fold the rest into the prose
- Rewrite paragraphs that start with "It is important to", "In today's", or "With the rise of"
- Replace generic opinions with specific observations
- Remove em-dashes and the words {BANNED_PHRASES}
- Keep every paragraph under {settings.PARAGRAPH_MAX_WORDS} words

## Preserve everything structural
- Keep ALL headings exactly as written, character for character
- Keep all facts, statistics, links, tables, code blocks and lists
- Do NOT add new H2 sections

## Draft to edit:
{input_data.content}

Output ONLY the polished blog post in Markdown. Output the COMPLETE article, every section, without stopping early."""

        result = self.llm.complete(
            prompt,
            system_prompt=build_system_prompt(ctx),
            temperature=TONE_TEMPERATURE,
            max_tokens=rewrite_max_tokens(words),
            model=self.model,
        )
        content = deduplicate(result.text)
        output = RewriteOutput(content=content, word_count=count_words(content), truncated=result.truncated)
        logger.info(f"Tone pass: {words} -> {output.word_count} words, truncated={output.truncated}")
        return output.model_dump()
