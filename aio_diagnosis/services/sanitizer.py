from bs4 import BeautifulSoup, Comment

# Tags whose entire subtree is excluded from the visible-text signal.
# Navigation chrome is dropped here but its links are collected beforehand.
_REMOVE_TAGS = {
    "script",
    "style",
    "noscript",
    "nav",
    "footer",
    "header",
}


def strip_non_content(soup: BeautifulSoup) -> BeautifulSoup:
    """Remove scripting, styling and page chrome from *soup* in place and return it."""
    for tag in soup.find_all(_REMOVE_TAGS):
        tag.decompose()

    # Remove HTML comment nodes (may contain debugging info or conditional blocks)
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    return soup
