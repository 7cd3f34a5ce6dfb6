"""Single-page HTML fetcher used by the domain crawler.

:func:`fetch_html` never raises: every failure mode (network error, timeout,
non-2xx status, non-HTML content type, blocked address, oversize body)
collapses to ``None`` so the crawler can simply skip the page.
"""

import ipaddress
import logging
import socket
from typing import Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import UnicodeDammit

from aio_diagnosis.config import settings

logger = logging.getLogger(__name__)

MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB
TIMEOUT = settings.CRAWLER_TIMEOUT  # seconds
MAX_REDIRECTS = 10
ALLOWED_SCHEMES = {"http", "https"}

REQUEST_HEADERS = {
    "User-Agent": "AIO-Diagnostic-Bot/1.0 (Website Analysis Tool)",
    "Accept": "text/html,application/xhtml+xml",
}


def _is_private_address(hostname: str) -> bool:
    """Return True if *hostname* resolves to a private, loopback, or link-local address."""
    try:
        infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror:
        return False

    for info in infos:
        raw_ip = info[4][0]
        # Strip IPv6 zone IDs (e.g. "::1%eth0" → "::1")
        raw_ip = raw_ip.split("%")[0]
        try:
            addr = ipaddress.ip_address(raw_ip)
        except ValueError:
            continue
        if addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved:
            return True
    return False


def _validate_url(url: str) -> None:
    """Raise ValueError if *url* fails SSRF / scheme validation."""
    parsed = urlparse(url)

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ValueError(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    hostname = parsed.hostname
    if not hostname:
        raise ValueError("URL must have a valid hostname.")

    if _is_private_address(hostname):
        raise ValueError("Requests to private/internal addresses are not allowed.")


def _is_html(response: httpx.Response) -> bool:
    return "text/html" in response.headers.get("content-type", "").lower()


def _decode(body: bytes, charset: Optional[str]) -> str:
    """Decode *body* with the header charset, else the one declared in the markup.

    Without either, UTF-8 is tried before any statistical guess.
    """
    if charset:
        try:
            return body.decode(charset, errors="replace")
        except LookupError:
            logger.debug("Fetcher: unknown charset label %r", charset)

    dammit = UnicodeDammit(body, is_html=True, user_encodings=["utf-8"])
    if dammit.unicode_markup is not None:
        return dammit.unicode_markup
    return body.decode("utf-8", errors="replace")


async def _get_html(client: httpx.AsyncClient, url: str) -> Optional[str]:
    """Follow redirects manually, validating every hop, and return the HTML body.

    Raises:
        ValueError: if a URL fails SSRF / scheme validation.
        httpx.HTTPError: on network, timeout, or HTTP status errors.
        RuntimeError: on oversize bodies or redirect loops.
    """
    _validate_url(url)

    current_url = url
    for _ in range(MAX_REDIRECTS + 1):
        async with client.stream("GET", current_url, headers=REQUEST_HEADERS) as response:
            if response.is_redirect:
                location = response.headers.get("location", "")
                next_url = urljoin(current_url, location)
                _validate_url(next_url)
                current_url = next_url
                continue

            response.raise_for_status()

            if not _is_html(response):
                logger.info("Fetcher: %s is not HTML (%s)", url, response.headers.get("content-type"))
                return None

            content_length = response.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > MAX_CONTENT_SIZE:
                raise RuntimeError("Response body exceeds the maximum allowed size.")

            chunks = []
            total = 0
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > MAX_CONTENT_SIZE:
                    raise RuntimeError("Response body exceeds the maximum allowed size.")
                chunks.append(chunk)

            return _decode(b"".join(chunks), response.charset_encoding)

    raise RuntimeError("Too many redirects.")


async def fetch_html(url: str, client: Optional[httpx.AsyncClient] = None) -> Optional[str]:
    """Fetch *url* and return its HTML markup, or ``None`` when the page is unusable.

    A single GET is issued with a bounded timeout.  When *client* is given it is
    reused (the crawler shares one client across a crawl); otherwise a
    short-lived client is opened for this request only.
    """
    try:
        if client is not None:
            return await _get_html(client, url)
        async with httpx.AsyncClient(follow_redirects=False, timeout=TIMEOUT) as own_client:
            return await _get_html(own_client, url)
    except httpx.TimeoutException:
        logger.warning("Fetcher: timeout fetching %s", url)
    except httpx.HTTPStatusError as exc:
        logger.warning("Fetcher: %s returned HTTP %s", url, exc.response.status_code)
    except (ValueError, httpx.HTTPError, RuntimeError) as exc:
        logger.warning("Fetcher: skipping %s – %s", url, exc)
    return None
