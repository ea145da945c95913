"""Best-effort website crawler for brand and site-structure context."""

import logging
import re
from typing import List, Optional
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup

from autoblog.config import settings
from autoblog.schemas.pipeline import CrawledPage, CrawlResult

logger = logging.getLogger(__name__)

_LOC = re.compile(r"<loc>\s*(.*?)\s*</loc>", re.IGNORECASE)
_SKIP_SCHEMES = ("javascript:", "mailto:", "tel:")
MAX_PAGE_TEXT = 5000


class CrawlService:
    """Fetches a site's home page and sitemap. Never raises."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or settings.CRAWL_TIMEOUT_SECONDS
        self.headers = {
            "User-Agent": settings.CRAWL_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml",
        }

    def _get(self, client: httpx.Client, url: str) -> Optional[str]:
        try:
            response = client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"Crawl request failed for {url}: {e}")
            return None
        if response.status_code != 200:
            logger.info(f"Crawl got {response.status_code} for {url}")
            return None
        return response.text

    def crawl(self, url: str) -> CrawlResult:
        """
        Crawl a website's home page and sitemap.

        Args:
            url: Site root URL

        Returns:
            CrawlResult; empty when the site cannot be reached
        """
        base_url = url.rstrip("/")
        result = CrawlResult()

        with httpx.Client(timeout=self.timeout, headers=self.headers, follow_redirects=True) as client:
            html = self._get(client, base_url)
            sitemap = self._get(client, f"{base_url}/sitemap.xml")

        if html:
            soup = BeautifulSoup(html, "html.parser")
            meta = soup.find("meta", attrs={"name": "description"})
            if meta and meta.get("content"):
                result.meta_description = meta["content"].strip()
            result.favicon = extract_favicon(soup, base_url)
            result.pages = extract_links(soup, base_url)
            for tag in soup(["script", "style", "noscript"]):
                tag.decompose()
            result.page_text = soup.get_text(separator="\n", strip=True)[:MAX_PAGE_TEXT]

        if sitemap:
            merge_sitemap(result.pages, _LOC.findall(sitemap))

        logger.info(f"Crawled {base_url}: {len(result.pages)} pages, {len(result.page_text)} chars of text")
        return result


def extract_favicon(soup: BeautifulSoup, base_url: str) -> str:
    """Best icon link, falling back to /favicon.ico."""
    icons = {}
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        rel_value = " ".join(rel).lower()
        if rel_value and rel_value not in icons:
            icons[rel_value] = link["href"]

    for rel_value in ("apple-touch-icon", "icon", "shortcut icon"):
        if rel_value in icons:
            return urljoin(base_url + "/", icons[rel_value])
    return urljoin(base_url + "/", "/favicon.ico")


def extract_links(soup: BeautifulSoup, base_url: str) -> List[CrawledPage]:
    """Same-origin page links from anchors, de-duplicated."""
    origin = urlsplit(base_url).netloc
    seen = set()
    pages = []

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith("#") or href.lower().startswith(_SKIP_SCHEMES):
            continue
        full_url = urljoin(base_url + "/", href).split("#")[0]
        if urlsplit(full_url).netloc != origin:
            continue
        normalized = full_url.split("?")[0].rstrip("/")
        if normalized in seen or normalized == base_url:
            continue
        seen.add(normalized)
        title = anchor.get_text(" ", strip=True)[:120] or normalized.rsplit("/", 1)[-1]
        if title:
            pages.append(CrawledPage(title=title, url=full_url))

    return pages


def merge_sitemap(pages: List[CrawledPage], sitemap_urls: List[str]):
    """Append sitemap URLs not already present, titled from their last path segment."""
    existing = {p.url.rstrip("/") for p in pages}
    for loc in sitemap_urls:
        if not loc.startswith("http"):
            continue
        normalized = loc.rstrip("/")
        if normalized in existing:
            continue
        existing.add(normalized)
        slug = normalized.rsplit("/", 1)[-1]
        pages.append(CrawledPage(title=slug.replace("-", " ").title(), url=loc))
