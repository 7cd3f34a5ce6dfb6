"""Domain crawler: BFS-crawls pages on the same host as a seed URL."""

import logging
from collections import deque
from typing import Deque, List, Set
from urllib.parse import urlparse

import httpx

from aio_diagnosis.config import settings
from aio_diagnosis.models.page import PageRecord
from aio_diagnosis.services.fetcher import TIMEOUT, fetch_html
from aio_diagnosis.services.parser import parse_page

logger = logging.getLogger(__name__)

MAX_PAGES = settings.CRAWLER_MAX_PAGES

# Seeds ending in one of these are treated as documents, not directories
_FILE_EXTENSIONS = (".html", ".php")


def normalize_start_url(domain_url: str) -> str:
    """Return an absolute seed URL: ``https://`` by default, directory-style path.

    ``example.com`` → ``https://example.com/``; ``http://example.com/a.html``
    is left untouched.
    """
    url = domain_url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    if not url.endswith("/") and not any(ext in url for ext in _FILE_EXTENSIONS):
        url += "/"
    return url


def _same_domain(url: str, base_host: str) -> bool:
    """Return True when *url* belongs to *base_host* (exact hostname match)."""
    return urlparse(url).hostname == base_host


async def crawl_domain(domain_url: str, max_pages: int = MAX_PAGES) -> List[PageRecord]:
    """Crawl pages on the same host as *domain_url* breadth-first.

    Pages are fetched one at a time.  The crawl stops when the frontier is
    empty or *max_pages* pages have been collected; links are only queued
    while ``collected + queued < max_pages`` so the frontier never outgrows the
    cap.  Unreachable pages are dropped without retry.

    Returns:
        The successfully parsed pages in crawl order.  An empty list means the
        site could not be reached at all.
    """
    start_url = normalize_start_url(domain_url)
    base_host = urlparse(start_url).hostname

    visited: Set[str] = set()
    queue: Deque[str] = deque([start_url])
    queued: Set[str] = {start_url}
    pages: List[PageRecord] = []

    async with httpx.AsyncClient(follow_redirects=False, timeout=TIMEOUT) as client:
        while queue and len(pages) < max_pages:
            url = queue.popleft()
            queued.discard(url)

            if url in visited:
                continue
            visited.add(url)

            html = await fetch_html(url, client)
            if html is None:
                continue

            page = parse_page(url, html)
            pages.append(page)

            for link in page.internal_links:
                if len(pages) + len(queue) >= max_pages:
                    break
                if link in visited or link in queued or not _same_domain(link, base_host):
                    continue
                queue.append(link)
                queued.add(link)
                logger.debug("Crawler: queued %s", link)

    logger.info("Crawler: collected %d page(s) from %s", len(pages), start_url)
    return pages
