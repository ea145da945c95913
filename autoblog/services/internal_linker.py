"""Retroactive internal linking from older posts to a newly published one."""

import json
import logging
import re
import uuid
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from autoblog.config import settings
from autoblog.database import SessionLocal
from autoblog.models.post import BlogPost
from autoblog.models.website import Website
from autoblog.services.llm_client import LLMClient
from autoblog.services.text_utils import strip_code_fences

logger = logging.getLogger(__name__)

_ID_ARRAY = re.compile(r"\[[\s\S]*?\]")


def parse_selected_ids(text: str) -> List[str]:
    """Ids from the first JSON array in text; empty when none parses."""
    match = _ID_ARRAY.search(text or "")
    if not match:
        return []
    try:
        ids = json.loads(match.group(0))
    except json.JSONDecodeError:
        return []
    if not isinstance(ids, list):
        return []
    return [str(i) for i in ids]


class InternalLinker:
    """Adds one contextual link to a new post inside a few related older posts."""

    def __init__(
        self,
        llm_client: LLMClient,
        session_factory: Callable[[], Session] = SessionLocal,
        model: Optional[str] = None,
    ):
        self.llm = llm_client
        self.session_factory = session_factory
        self.model = model

    def _select_related(self, title: str, keyword: str, candidates: List[BlogPost]) -> List[str]:
        summaries = "\n".join(
            f'ID:{p.id} | "{p.title}" | keyword: {p.focus_keyword or "n/a"}' for p in candidates
        )
        prompt = f"""From the list below, pick the 3-5 articles MOST relevant to a new article titled "{title}" (keyword: "{keyword}").
Only choose articles whose topics genuinely overlap, where a reader of one would benefit from reading the other.

Articles:
{summaries}

Output ONLY a JSON array of IDs. Example: ["id1","id2","id3"]"""

        result = self.llm.complete(prompt, temperature=0.2, max_tokens=200, model=self.model)
        return parse_selected_ids(result.text)

    def _insert_link(self, post: BlogPost, website: Optional[Website], title: str, url: str, keyword: str) -> str:
        brand_line = ""
        if website:
            brand_line = (
                f"\nBrand: {website.brand_name} | Tone: {website.tone or 'professional'} "
                f"| Audience: {website.target_audience or 'general'}"
            )

        prompt = f"""You are an SEO editor. Add ONE natural internal link to the article below, pointing to a new related article.{brand_line}

New article to link to:
- Title: "{title}"
- URL: {url}
- Keyword: "{keyword}"

## Rules:
1. Find the single best place in the article to mention and link to the new article
2. Modify an EXISTING sentence to include a Markdown link; do NOT add a new sentence
3. Use descriptive anchor text (not "click here" or "read more")
4. Keep ALL other content exactly as-is
5. Output the COMPLETE article with no truncation

## Article to update (keyword: "{post.focus_keyword or 'n/a'}"):
{post.content}

Output ONLY the updated article in Markdown format. No code fences."""

        result = self.llm.complete(prompt, temperature=0.2, max_tokens=8192, model=self.model)
        return strip_code_fences(result.text)

    def link_new_post(self, post_id: uuid.UUID, base_url: str) -> int:
        """
        Link older published posts of the same website to a new post.

        Each updated post is committed on its own, so a partial run keeps the
        updates that succeeded. Errors are logged, never raised.

        Args:
            post_id: The newly published post
            base_url: Public base URL for the website's posts

        Returns:
            Number of older posts updated
        """
        db = self.session_factory()
        try:
            new_post = db.get(BlogPost, post_id)
            if not new_post:
                logger.warning(f"Linker: post {post_id} not found")
                return 0

            website = db.get(Website, new_post.website_id)
            candidates = (
                db.query(BlogPost)
                .filter(
                    BlogPost.website_id == new_post.website_id,
                    BlogPost.status == "PUBLISHED",
                    BlogPost.slug != new_post.slug,
                )
                .order_by(BlogPost.published_at.desc())
                .limit(settings.LINKER_CANDIDATE_WINDOW)
                .all()
            )
            if not candidates:
                return 0

            keyword = new_post.focus_keyword or new_post.title
            new_url = f"{base_url.rstrip('/')}/{new_post.slug}"
            marker = f"/{new_post.slug}"

            selected = self._select_related(new_post.title, keyword, candidates)
            by_id = {str(p.id): p for p in candidates}

            updated = 0
            for selected_id in selected[: settings.LINKER_MAX_TARGETS]:
                post = by_id.get(selected_id)
                if not post or marker in post.content:
                    continue

                try:
                    content = self._insert_link(post, website, new_post.title, new_url, keyword)
                except Exception as e:
                    logger.warning(f"Linker: failed to update '{post.title}': {e}")
                    continue

                if len(content) < len(post.content) * settings.LINKER_MIN_LENGTH_RATIO:
                    logger.warning(f"Linker: output too short for '{post.title}', skipping")
                    continue
                if marker not in content:
                    logger.warning(f"Linker: link not inserted in '{post.title}', skipping")
                    continue

                post.content = content
                db.commit()
                updated += 1
                logger.info(f"Linker: updated '{post.title}' with link to '{new_post.title}'")

            logger.info(f"Linker: {updated} older posts updated with link to '{new_post.title}'")
            return updated
        except Exception as e:
            logger.error(f"Linker: link_new_post failed for {post_id}: {e}", exc_info=True)
            db.rollback()
            return 0
        finally:
            db.close()
