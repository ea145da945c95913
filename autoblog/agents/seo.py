"""SEO agent: keyword placement and allow-listed internal links."""

import logging
from typing import Any, Dict, List, Tuple

from autoblog.agents.base import BaseAgent
from autoblog.agents.prompts import BANNED_PHRASES, build_system_prompt
from autoblog.agents.tone import rewrite_max_tokens
from autoblog.config import settings
from autoblog.schemas.agents import RewriteOutput, SeoInput
from autoblog.services.deduplicator import deduplicate
from autoblog.services.text_utils import count_words

logger = logging.getLogger(__name__)

SEO_TEMPERATURE = 0.4


def _link_block(links: List[Tuple[str, str]]) -> str:
    if not links:
        return "\n   No internal links are approved for this article. Do not add any internal links."
    lines = "\n".join(f'   - "{anchor}" -> {url}' for anchor, url in links)
    return f"\n   Approved internal links (use each URL AT MOST ONCE, no other internal URLs):\n{lines}"


class SeoAgent(BaseAgent):
    """Agent for the SEO optimization pass."""

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Optimize the article for its keyword."""
        input_data = SeoInput(**payload)
        keyword = input_data.keyword
        words = count_words(input_data.content)
        target_words = settings.WORD_TARGETS.get(input_data.content_length, settings.WORD_TARGETS["MEDIUM"])

        faq_rule = (
            "7. Ensure there is a \"## FAQ\" section at the end with 4-5 questions as ### headings"
            if input_data.include_faq
            else "7. Skip FAQ if not present"
        )

        prompt = f"""You are an SEO expert. Optimize the following blog post for the keyword "{keyword}" while keeping its writing style and tone.

## Rules:
1. Use the exact keyword "{keyword}" in the first 100 words, at least one H2 heading, and the conclusion
2. Aim for 1-2% keyword density, never stuffed
3. Add related keywords naturally
4. Keep a proper H2/H3 hierarchy with no skipped levels
5. Add internal links as real markdown links [anchor text](url).{_link_block(input_data.links)}
   Place links inline where the topic is discussed, with descriptive anchor text.
6. Make sure the intro paragraph contains the keyword
{faq_rule}
8. Every paragraph MUST be under {settings.PARAGRAPH_MAX_WORDS} words
9. Remove these words: {BANNED_PHRASES}, and all em-dashes
10. If there is a table of contents, make sure it matches the actual headings
11. Keep the article length at {target_words} words

## Blog Post:
{input_data.content}

Output ONLY the optimized blog post in Markdown. Output the COMPLETE article, every section, without stopping early."""

        result = self.llm.complete(
            prompt,
            system_prompt=build_system_prompt(input_data.context),
            temperature=SEO_TEMPERATURE,
            max_tokens=rewrite_max_tokens(words),
            model=self.model,
        )
        content = deduplicate(result.text)
        output = RewriteOutput(content=content, word_count=count_words(content), truncated=result.truncated)
        logger.info(f"SEO pass: {words} -> {output.word_count} words, truncated={output.truncated}")
        return output.model_dump()
