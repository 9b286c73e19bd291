"""Normalization of parsed feed entries into merged feed items."""

import time
from datetime import UTC, datetime
from typing import Any

from feedparser import FeedParserDict

from .content import extract_article_body, html_to_text
from .models import FeedItem, to_iso


def _struct_time_to_iso(value: time.struct_time | None) -> str | None:
    if not value:
        return None
    try:
        return to_iso(datetime(*value[:6], tzinfo=UTC))
    except (TypeError, ValueError):
        return None


def _rss_content(entry: Any) -> str | None:
    # content:encoded and Atom <content> win over the plain description
    content = entry.get("content")
    if isinstance(content, list):
        for part in content:
            value = part.get("value") if hasattr(part, "get") else None
            if value:
                return value
    return entry.get("summary") or entry.get("description") or None


def normalize_rss_entry(
    entry: Any, feed_title: str | None, feed_url: str
) -> FeedItem:
    """Normalize a feedparser entry into a FeedItem.

    Args:
        entry: Entry from ``feedparser.parse(...).entries``
        feed_title: Title of the owning source feed
        feed_url: URL the source feed was fetched from

    Returns:
        Normalized FeedItem
    """
    link = entry.get("link") or None
    raw_content = _rss_content(entry)
    content = extract_article_body(raw_content) if raw_content else None
    categories = [
        tag.get("term")
        for tag in entry.get("tags") or []
        if hasattr(tag, "get") and tag.get("term")
    ]

    return FeedItem(
        title=entry.get("title") or None,
        link=link,
        published=entry.get("published") or entry.get("updated") or None,
        published_iso=_struct_time_to_iso(
            entry.get("published_parsed") or entry.get("updated_parsed")
        ),
        content=content,
        plain_summary=html_to_text(raw_content) or None,
        author=entry.get("author") or None,
        guid=entry.get("id") or link,
        categories=categories,
        source_feed_title=feed_title,
        source_feed_url=feed_url,
    )


def json_text(value: Any) -> str | None:
    """Return a non-empty JSON string value, or None for any other value."""
    if isinstance(value, str) and value:
        return value
    return None


def _json_feed_author(item: dict) -> str | None:
    author = item.get("author")
    if not isinstance(author, dict):
        # JSON Feed 1.1 replaced "author" with an "authors" array
        authors = item.get("authors")
        author = authors[0] if isinstance(authors, list) and authors else None
    if isinstance(author, dict):
        return json_text(author.get("name"))
    return None


def normalize_json_feed_item(
    item: dict, feed_title: str | None, feed_url: str
) -> FeedItem:
    """Normalize a JSON Feed item into a FeedItem.

    Args:
        item: One element of the JSON Feed ``items`` array
        feed_title: Title of the owning source feed
        feed_url: URL the source feed was fetched from

    Returns:
        Normalized FeedItem
    """
    link = json_text(item.get("url")) or json_text(item.get("external_url"))
    content_html = json_text(item.get("content_html"))
    published = json_text(item.get("date_published"))
    tags = item.get("tags")
    guid = item.get("id")

    return FeedItem(
        title=json_text(item.get("title")),
        link=link,
        published=published,
        published_iso=published,
        content=extract_article_body(content_html) if content_html else None,
        plain_summary=json_text(item.get("content_text")) or json_text(item.get("summary")),
        author=_json_feed_author(item),
        guid=str(guid) if isinstance(guid, (str, int)) and guid != "" else link,
        categories=[tag for tag in tags if json_text(tag)] if isinstance(tags, list) else [],
        source_feed_title=feed_title,
        source_feed_url=feed_url,
    )


def normalize_item(item: Any, feed_title: str | None, feed_url: str) -> FeedItem:
    """Normalize any supported item shape into a FeedItem.

    Items that are already FeedItem instances are returned as they are.
    """
    if isinstance(item, FeedItem):
        return item
    if isinstance(item, FeedParserDict):
        return normalize_rss_entry(item, feed_title, feed_url)
    return normalize_json_feed_item(item, feed_title, feed_url)
