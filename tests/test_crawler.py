"""Tests for the website crawler."""

import httpx
import pytest
from bs4 import BeautifulSoup

from autoblog.schemas.pipeline import CrawledPage
from autoblog.services.crawler import CrawlService, extract_favicon, extract_links, merge_sitemap

BASE = "https://acme.example"

HOME = """<html><head>
<meta name="description" content=" Gear for trail runners ">
<link rel="stylesheet" href="/site.css">
<link rel="shortcut icon" href="/fav.ico">
<script>var tracking = 1;</script>
</head><body>
<a href="/">Home</a>
<a href="/shoes">Shoes</a>
<a href="/shoes/">Shoes again</a>
<a href="https://other.example/x">Elsewhere</a>
<a href="mailto:hi@acme.example">Mail</a>
<a href="#top">Top</a>
<a href="/guides/trail-care?ref=nav"><img src="x.png"></a>
<p>Welcome to Acme Trails</p>
</body></html>"""

SITEMAP = """<?xml version="1.0"?><urlset>
<url><loc>https://acme.example/shoes/</loc></url>
<url><loc>https://acme.example/trail-care-guide</loc></url>
</urlset>"""


def _soup(html):
    return BeautifulSoup(html, "html.parser")


@pytest.fixture
def mock_site(monkeypatch):
    real_client = httpx.Client
    routes = {"/": (200, HOME), "/sitemap.xml": (200, SITEMAP)}

    def handler(request):
        if "down" in routes:
            raise httpx.ConnectError("unreachable")
        status, body = routes.get(request.url.path, (404, ""))
        return httpx.Response(status, text=body)

    monkeypatch.setattr(httpx, "Client", lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw))
    return routes


def test_favicon_prefers_apple_touch_icon():
    soup = _soup('<link rel="icon" href="/icon.png"><link rel="apple-touch-icon" href="/apple.png">')
    assert extract_favicon(soup, BASE) == "https://acme.example/apple.png"


def test_favicon_shortcut_icon_and_default():
    assert extract_favicon(_soup(HOME), BASE) == "https://acme.example/fav.ico"
    assert extract_favicon(_soup("<html></html>"), BASE) == "https://acme.example/favicon.ico"


def test_extract_links_keeps_same_origin_pages():
    pages = extract_links(_soup(HOME), BASE)

    assert [(p.title, p.url) for p in pages] == [
        ("Shoes", "https://acme.example/shoes"),
        ("trail-care", "https://acme.example/guides/trail-care?ref=nav"),
    ]


def test_merge_sitemap_adds_new_urls():
    pages = [CrawledPage(title="Shoes", url="https://acme.example/shoes")]

    merge_sitemap(pages, ["https://acme.example/shoes/", "https://acme.example/trail-care-guide", "/relative"])

    assert [(p.title, p.url) for p in pages] == [
        ("Shoes", "https://acme.example/shoes"),
        ("Trail Care Guide", "https://acme.example/trail-care-guide"),
    ]


def test_crawl(mock_site):
    result = CrawlService().crawl(BASE + "/")

    assert result.meta_description == "Gear for trail runners"
    assert result.favicon == "https://acme.example/fav.ico"
    assert "Welcome to Acme Trails" in result.page_text
    assert "tracking" not in result.page_text
    assert [p.url for p in result.pages] == [
        "https://acme.example/shoes",
        "https://acme.example/guides/trail-care?ref=nav",
        "https://acme.example/trail-care-guide",
    ]


def test_crawl_without_sitemap(mock_site):
    del mock_site["/sitemap.xml"]

    result = CrawlService().crawl(BASE)

    assert len(result.pages) == 2


def test_crawl_unreachable_site_is_empty(mock_site):
    mock_site["down"] = True

    result = CrawlService().crawl(BASE)

    assert result.pages == []
    assert result.page_text == ""
    assert result.favicon is None
