"""Content post-processing for feed items."""

import unicodedata

from bs4 import BeautifulSoup

# Wrapper that precedes the real article markup in Reddit-style feeds.
ARTICLE_MARKER = '<div class="md"><p>'


def extract_article_body(content: str | None) -> str | None:
    """Return the markup following the article marker.

    Content without the marker is returned unchanged.

    Args:
        content: HTML fragment from a feed item

    Returns:
        The fragment after the first marker, or the original content
    """
    if not content:
        return content

    index = content.find(ARTICLE_MARKER)
    if index == -1:
        return content
    return content[index + len(ARTICLE_MARKER) :]


def sanitize_text(text: str | None) -> str:
    """Strip typographic punctuation and normalize whitespace in plain text.

    Non-ASCII punctuation and symbols (smart quotes, dashes, ellipses, emoji)
    are dropped, any Unicode whitespace becomes a plain space and runs of
    whitespace are collapsed.

    Args:
        text: Plain text description

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    chars = []
    for char in text:
        if char.isspace():
            chars.append(" ")
            continue
        if ord(char) > 127 and unicodedata.category(char)[0] in ("P", "S", "C"):
            continue
        chars.append(char)

    return " ".join("".join(chars).split())


def html_to_text(content: str | None) -> str:
    """Remove HTML tags from content and normalize whitespace.

    Args:
        content: Raw content that may contain HTML

    Returns:
        Clean text content without HTML tags
    """
    if not content:
        return ""

    if "<" not in content and ">" not in content:
        return " ".join(content.split())

    soup = BeautifulSoup(content, "html.parser")

    for script in soup(["script", "style"]):
        script.decompose()

    text = soup.get_text(separator=" ")
    return " ".join(text.split())
