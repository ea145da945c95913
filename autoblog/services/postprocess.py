"""Markdown clean-up applied once to the chosen article body."""

import logging
import math
import re
from typing import Iterable, List, Optional, Set, Tuple
from urllib.parse import urlsplit

from autoblog.config import settings
from autoblog.schemas.pipeline import ExistingPost, InternalLink

logger = logging.getLogger(__name__)

LINK_PATTERN = re.compile(r"(?<!!)\[([^\]]+)\]\(([^)\s]+)\)")
PLACEHOLDER_PATTERN = re.compile(r"\[INTERNAL_LINK:\s*([^\]]+)\]", re.IGNORECASE)
HEADING_PATTERN = re.compile(r"^(#{2,3})\s+(.+)$")
TOC_ENTRY_PATTERN = re.compile(r"^(\s*-\s+\[)([^\]]+)(\]\(#)([^)]+)(\))")
STRUCTURAL_BLOCK = re.compile(r"^(#{1,6}\s|[-*]\s|\d+\.\s|!\[|```|<|\|)")
SENTENCE_PATTERN = re.compile(r"[^.!?]*[.!?]+|[^.!?]+$")

# (anchor, url)
ApprovedLink = Tuple[str, str]


def normalize_url(url: str) -> str:
    """Lowercase and drop a trailing slash for URL comparisons."""
    return url.strip().rstrip("/").lower()


def _host(url: str) -> str:
    netloc = urlsplit(url).netloc.lower()
    return netloc[4:] if netloc.startswith("www.") else netloc


def build_link_allowlist(
    internal_links: Iterable[InternalLink],
    existing_posts: Iterable[ExistingPost],
) -> List[ApprovedLink]:
    """
    Consolidate configured links and existing posts into one list.

    Each URL appears once; the first anchor seen for a URL wins. Configured
    keyword links come before existing posts.
    """
    seen: Set[str] = set()
    links: List[ApprovedLink] = []

    for link in internal_links:
        if link.url not in seen:
            seen.add(link.url)
            links.append((link.keyword, link.url))

    for post in existing_posts:
        if post.url not in seen:
            seen.add(post.url)
            links.append((post.focus_keyword or post.title, post.url))

    return links


def resolve_placeholders(content: str, links: List[ApprovedLink]) -> str:
    """Replace ``[INTERNAL_LINK: anchor]`` with a real link or the bare anchor."""

    def _replace(match: re.Match) -> str:
        anchor = match.group(1).strip()
        needle = anchor.lower()
        for keyword, url in links:
            kw = keyword.lower()
            if kw and (kw in needle or needle in kw):
                return f"[{anchor}]({url})"
        return anchor

    return PLACEHOLDER_PATTERN.sub(_replace, content)


def strip_unapproved_links(content: str, links: List[ApprovedLink], site_url: Optional[str]) -> str:
    """
    Un-link same-site links whose URL is not in the allow-list.

    A link is same-site when it is relative or its host matches the site or any
    allow-listed host. External links and in-page ``#anchor`` links are kept.
    """
    allowed = {normalize_url(url) for _, url in links}
    site_hosts = {_host(url) for _, url in links}
    if site_url:
        site_hosts.add(_host(site_url))
    site_hosts.discard("")

    def _replace(match: re.Match) -> str:
        anchor, url = match.group(1), match.group(2)
        if url.startswith("#") or normalize_url(url) in allowed:
            return match.group(0)
        parts = urlsplit(url)
        if parts.scheme in ("mailto", "tel"):
            return match.group(0)
        relative = not parts.netloc
        if relative or _host(url) in site_hosts:
            logger.info(f"Removing unapproved internal link: {url}")
            return anchor
        return match.group(0)

    return LINK_PATTERN.sub(_replace, content)


def collapse_duplicate_links(content: str) -> str:
    """Keep the first link to each URL; later ones become their anchor text."""
    linked: Set[str] = set()

    def _replace(match: re.Match) -> str:
        anchor, url = match.group(1), match.group(2)
        if url.startswith("#"):
            return match.group(0)
        key = normalize_url(url)
        if key in linked:
            return anchor
        linked.add(key)
        return match.group(0)

    return LINK_PATTERN.sub(_replace, content)


def heading_anchor(text: str) -> str:
    """Slug used for in-page heading anchors."""
    anchor = text.lower()
    anchor = re.sub(r"[`*_\[\]()]", "", anchor)
    anchor = re.sub(r"[^\w\s-]", "", anchor)
    return re.sub(r"\s+", "-", anchor.strip())


def fix_toc_labels(content: str) -> str:
    """Rewrite TOC entry labels to the exact text of the heading they point to."""
    lines = content.split("\n")

    headings = {}
    for line in lines:
        match = HEADING_PATTERN.match(line)
        if not match:
            continue
        text = match.group(2).strip()
        if text.lower() == "table of contents":
            continue
        headings[heading_anchor(text)] = text

    fixed = []
    for line in lines:
        match = TOC_ENTRY_PATTERN.match(line)
        if match:
            anchor = match.group(4)
            correct = headings.get(anchor)
            if correct and correct != match.group(2):
                line = f"{match.group(1)}{correct}{match.group(3)}{anchor}{match.group(5)}" + line[match.end():]
        fixed.append(line)
    return "\n".join(fixed)


def split_long_paragraphs(content: str, max_words: Optional[int] = None) -> str:
    """Split prose paragraphs over max_words at the sentence nearest the midpoint."""
    limit = max_words or settings.PARAGRAPH_MAX_WORDS
    blocks = []
    for block in content.split("\n\n"):
        trimmed = block.strip()
        if STRUCTURAL_BLOCK.match(trimmed) or len(trimmed.split()) <= limit:
            blocks.append(block)
            continue
        sentences = SENTENCE_PATTERN.findall(trimmed)
        if len(sentences) < 2:
            blocks.append(block)
            continue
        mid = math.ceil(len(sentences) / 2)
        blocks.append("".join(sentences[:mid]).strip())
        blocks.append("".join(sentences[mid:]).strip())
    return "\n\n".join(blocks)


def post_process(content: str, links: List[ApprovedLink], site_url: Optional[str] = None) -> str:
    """
    Run every clean-up step in order.

    Args:
        content: Chosen article body
        links: Approved (anchor, url) pairs
        site_url: Brand URL used to recognise same-site links

    Returns:
        Cleaned Markdown
    """
    content = resolve_placeholders(content, links)
    content = strip_unapproved_links(content, links, site_url)
    content = collapse_duplicate_links(content)
    content = fix_toc_labels(content)
    return split_long_paragraphs(content)
