"""Turn one page's raw markup into a :class:`PageRecord`."""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from aio_diagnosis.models.page import Headings, ImageRef, PageRecord
from aio_diagnosis.services.sanitizer import strip_non_content

logger = logging.getLogger(__name__)

_FAQ_KEYWORDS = ("よくある質問", "faq", "q&a")
_CONTACT_KEYWORDS = ("お問い合わせ", "contact")
_ADDRESS_KEYWORDS = ("所在地", "住所")
_PHONE_KEYWORDS = ("tel", "電話")

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_link(base_url: str, href: str) -> Optional[str]:
    """Resolve *href* against *base_url*, dropping query string and fragment.

    Returns ``None`` when the link cannot be resolved to an http(s) URL.
    """
    try:
        parsed = urlparse(urljoin(base_url, href.strip()))
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    return parsed._replace(path=parsed.path or "/", query="", fragment="").geturl()


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    meta = soup.find("meta", attrs=attrs)
    if meta and meta.get("content"):
        return str(meta["content"]).strip()
    return ""


def _extract_charset(soup: BeautifulSoup) -> str:
    meta = soup.find("meta", charset=True)
    if meta:
        return str(meta["charset"]).strip()
    return _meta_content(soup, **{"http-equiv": "Content-Type"})


def _extract_og_tags(soup: BeautifulSoup) -> Dict[str, str]:
    og_tags: Dict[str, str] = {}
    for meta in soup.select('meta[property^="og:"]'):
        prop = str(meta.get("property", "")).strip()
        if prop:
            og_tags[prop] = str(meta.get("content", ""))
    return og_tags


def _extract_canonical(soup: BeautifulSoup) -> str:
    link_tag = soup.find("link", rel="canonical")
    if link_tag and link_tag.get("href"):
        return str(link_tag["href"]).strip()
    return ""


def _extract_headings(soup: BeautifulSoup) -> Headings:
    return Headings(
        **{
            f"h{level}": [h.get_text().strip() for h in soup.find_all(f"h{level}")]
            for level in range(1, 7)
        }
    )


def _extract_structured_data(soup: BeautifulSoup, url: str) -> List[Any]:
    blocks: List[Any] = []
    for script in soup.find_all("script", type="application/ld+json"):
        raw = script.string if script.string is not None else script.get_text()
        try:
            blocks.append(json.loads(raw))
        except json.JSONDecodeError as exc:
            logger.debug("Parser: dropping malformed JSON-LD on %s – %s", url, exc)
    return blocks


def _extract_links(soup: BeautifulSoup, base_url: str) -> Tuple[List[str], List[str]]:
    """Split every anchor on the page into (internal, external) absolute URLs."""
    base_host = urlparse(base_url).hostname
    internal: List[str] = []
    external: List[str] = []
    seen: set = set()
    for a in soup.find_all("a", href=True):
        link = normalize_link(base_url, str(a["href"]))
        if link is None or link in seen:
            continue
        seen.add(link)
        if urlparse(link).hostname == base_host:
            internal.append(link)
        else:
            external.append(link)
    return internal, external


def _extract_images(soup: BeautifulSoup) -> List[ImageRef]:
    return [
        ImageRef(src=str(img.get("src", "")), alt=str(img.get("alt", "")))
        for img in soup.find_all("img")
    ]


def _is_faq_block(block: Any) -> bool:
    if not isinstance(block, dict):
        return False
    declared = block.get("@type")
    if isinstance(declared, list):
        return "FAQPage" in declared
    return declared == "FAQPage"


def parse_page(url: str, html: str) -> PageRecord:
    """Extract a :class:`PageRecord` from *html* fetched from *url*.

    Headings, structured data and links are collected from the full document
    (navigation and footer links are legitimate site-structure signals); the
    visible-text signal, the image list and the contact heuristics are
    computed after scripts, styles and page chrome have been stripped.
    """
    soup = BeautifulSoup(html, "lxml")

    title_tag = soup.find("title")
    title = title_tag.get_text().strip() if title_tag else ""
    html_tag = soup.find("html")
    lang = str(html_tag.get("lang", "")).strip() if html_tag else ""

    headings = _extract_headings(soup)
    structured_data = _extract_structured_data(soup, url)
    internal_links, external_links = _extract_links(soup, url)

    strip_non_content(soup)
    body = soup.find("body") or soup
    text_content = _WHITESPACE_RE.sub(" ", body.get_text()).strip()
    lowered = text_content.lower()

    has_faq = any(k in lowered for k in _FAQ_KEYWORDS) or any(
        _is_faq_block(block) for block in structured_data
    )
    has_contact_info = any(k in lowered for k in _CONTACT_KEYWORDS) or bool(
        soup.select('a[href^="mailto:"]')
    )
    has_address = any(k in lowered for k in _ADDRESS_KEYWORDS) or soup.find("address") is not None
    has_phone = any(k in lowered for k in _PHONE_KEYWORDS) or bool(soup.select('a[href^="tel:"]'))

    return PageRecord(
        url=url,
        title=title,
        meta_description=_meta_content(soup, name="description"),
        meta_keywords=_meta_content(soup, name="keywords"),
        og_tags=_extract_og_tags(soup),
        canonical=_extract_canonical(soup),
        headings=headings,
        structured_data=structured_data,
        text_content=text_content,
        word_count=len(text_content),
        images=_extract_images(soup),
        internal_links=internal_links,
        external_links=external_links,
        has_ssl=urlparse(url).scheme == "https",
        has_faq=has_faq,
        has_contact_info=has_contact_info,
        has_address=has_address,
        has_phone=has_phone,
        viewport=_meta_content(soup, name="viewport"),
        charset=_extract_charset(soup),
        lang=lang,
    )
