"""Tests for crawler.crawl_domain with fetch_html patched out."""

import asyncio
from unittest.mock import AsyncMock, patch

from aio_diagnosis.services.crawler import crawl_domain, normalize_start_url

_BASE = "https://example.com"


def _page(*hrefs):
    links = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><head><title>t</title></head><body><p>text</p>{links}</body></html>"


def _crawl(site, start=_BASE, **kwargs):
    """Run crawl_domain against *site*, a {url: html} mapping; others are unreachable."""

    async def fake_fetch(url, client=None):
        return site.get(url)

    mock = AsyncMock(side_effect=fake_fetch)
    with patch("aio_diagnosis.services.crawler.fetch_html", mock):
        pages = asyncio.run(crawl_domain(start, **kwargs))
    return pages, mock


def _fetched_urls(mock):
    return [call.args[0] for call in mock.await_args_list]


class TestNormalizeStartUrl:
    def test_adds_scheme_and_trailing_slash(self):
        assert normalize_start_url("example.com") == "https://example.com/"

    def test_keeps_explicit_http(self):
        assert normalize_start_url("http://example.com") == "http://example.com/"

    def test_adds_trailing_slash_to_directory_path(self):
        assert normalize_start_url("https://example.com/about") == "https://example.com/about/"

    def test_leaves_document_paths_alone(self):
        assert normalize_start_url("https://example.com/index.html") == "https://example.com/index.html"
        assert normalize_start_url("https://example.com/index.php") == "https://example.com/index.php"

    def test_strips_surrounding_whitespace(self):
        assert normalize_start_url("  example.com/  ") == "https://example.com/"


class TestCrawlDomain:
    def test_breadth_first_order(self):
        site = {
            f"{_BASE}/": _page("/a/", "/b/"),
            f"{_BASE}/a/": _page("/c/"),
            f"{_BASE}/b/": _page(),
            f"{_BASE}/c/": _page(),
        }
        pages, _ = _crawl(site)
        assert [p.url for p in pages] == [
            f"{_BASE}/",
            f"{_BASE}/a/",
            f"{_BASE}/b/",
            f"{_BASE}/c/",
        ]

    def test_each_url_fetched_once(self):
        site = {
            f"{_BASE}/": _page("/a/", "/a/#x", "/a/?utm=1", "/"),
            f"{_BASE}/a/": _page("/", "/a/"),
        }
        pages, mock = _crawl(site)
        assert [p.url for p in pages] == [f"{_BASE}/", f"{_BASE}/a/"]
        assert _fetched_urls(mock) == [f"{_BASE}/", f"{_BASE}/a/"]

    def test_external_links_are_not_followed(self):
        site = {f"{_BASE}/": _page("https://other.example.org/", "https://blog.example.com/")}
        pages, mock = _crawl(site)
        assert len(pages) == 1
        assert _fetched_urls(mock) == [f"{_BASE}/"]

    def test_unreachable_pages_are_skipped(self):
        site = {
            f"{_BASE}/": _page("/missing/", "/ok/"),
            f"{_BASE}/ok/": _page(),
        }
        pages, mock = _crawl(site)
        assert [p.url for p in pages] == [f"{_BASE}/", f"{_BASE}/ok/"]
        assert f"{_BASE}/missing/" in _fetched_urls(mock)

    def test_unreachable_seed_yields_empty_list(self):
        pages, mock = _crawl({})
        assert pages == []
        assert mock.await_count == 1

    def test_caps_pages_on_unbounded_site(self):
        site = {f"{_BASE}/": _page("/p1/", "/p2/", "/p3/")}
        for n in range(1, 200):
            site[f"{_BASE}/p{n}/"] = _page(f"/p{n + 1}/", f"/p{n + 2}/", f"/p{n + 3}/")
        pages, mock = _crawl(site)
        assert len(pages) == 20
        assert mock.await_count == 20
        assert len({p.url for p in pages}) == 20

    def test_custom_cap(self):
        site = {f"{_BASE}/": _page(*[f"/p{n}/" for n in range(10)])}
        for n in range(10):
            site[f"{_BASE}/p{n}/"] = _page()
        pages, _ = _crawl(site, max_pages=5)
        assert len(pages) == 5

    def test_bare_domain_seed(self):
        site = {f"{_BASE}/": _page()}
        pages, _ = _crawl(site, start="example.com")
        assert [p.url for p in pages] == [f"{_BASE}/"]
