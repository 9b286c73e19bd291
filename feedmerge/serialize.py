"""Rendering of the merged feed as RSS 2.0 or JSON Feed 1.1."""

import json
import uuid
from datetime import UTC, datetime
from email.utils import format_datetime

from .content import sanitize_text
from .models import FeedItem, MergedFeed

GENERATOR = "rssrssrssrss"
DEFAULT_TITLE = "Merged Feed"
DEFAULT_DESCRIPTION = "Combined feed from multiple sources"
JSON_FEED_VERSION = "https://jsonfeed.org/version/1.1"


def escape_xml(text: str) -> str:
    """Escape XML special characters in text."""
    if not text:
        return ""

    text = text.replace("&", "&amp;")
    text = text.replace("<", "&lt;")
    text = text.replace(">", "&gt;")
    text = text.replace('"', "&quot;")
    text = text.replace("'", "&apos;")

    return text


def wrap_cdata(content: str) -> str:
    """Carry content verbatim inside a CDATA section."""
    # "]]>" would close the section early, so split it across two sections
    return "<![CDATA[" + content.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def linked_title(item: FeedItem) -> str | None:
    """Title wrapped in an anchor to the item link, when both exist."""
    if item.title and item.link:
        return f'<a href="{item.link}">{item.title}</a>'
    return item.title


def _render_rss_item(item: FeedItem) -> str:
    lines = ["    <item>"]

    if item.title and item.link:
        lines.append(f"      <title>{wrap_cdata(linked_title(item))}</title>")
    elif item.title:
        lines.append(f"      <title>{escape_xml(item.title)}</title>")
    else:
        lines.append("      <title />")

    if item.link:
        lines.append(f"      <link>{escape_xml(item.link)}</link>")

    lines.append(f"      <guid>{escape_xml(item.guid or item.link or '')}</guid>")

    pub_date = item.published or item.published_iso
    if pub_date:
        lines.append(f"      <pubDate>{escape_xml(pub_date)}</pubDate>")

    if item.author:
        lines.append(f"      <dc:creator>{wrap_cdata(item.author)}</dc:creator>")

    if item.content:
        # Not entity-encoded: smart quotes and markup pass through untouched.
        lines.append(f"      <content:encoded>{wrap_cdata(item.content)}</content:encoded>")
    elif item.plain_summary:
        lines.append(
            f"      <description>{escape_xml(sanitize_text(item.plain_summary))}</description>"
        )

    for category in item.categories:
        lines.append(f"      <category>{escape_xml(category)}</category>")

    if item.source_feed_title and item.source_feed_url:
        lines.append(
            f'      <source url="{escape_xml(item.source_feed_url)}">'
            f"{escape_xml(item.source_feed_title)}</source>"
        )

    lines.append("    </item>")
    return "\n".join(lines) + "\n"


def render_rss(feed: MergedFeed, request_url: str, now: datetime | None = None) -> str:
    """Render the merged feed as an RSS 2.0 document.

    Args:
        feed: The merged feed
        request_url: Canonical URL of the current request
        now: Build time, defaults to the current time

    Returns:
        RSS XML text
    """
    now = now or datetime.now(UTC)
    items = "".join(_render_rss_item(item) for item in feed.items)

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/"'
        ' xmlns:dc="http://purl.org/dc/elements/1.1/">\n'
        "  <channel>\n"
        f"    <title>{escape_xml(feed.title or DEFAULT_TITLE)}</title>\n"
        f"    <description>{escape_xml(feed.description or DEFAULT_DESCRIPTION)}</description>\n"
        f"    <link>{escape_xml(feed.link or request_url)}</link>\n"
        f"    <lastBuildDate>{format_datetime(now.astimezone(UTC), usegmt=True)}</lastBuildDate>\n"
        f"    <generator>{GENERATOR}</generator>\n"
        f"{items}"
        "  </channel>\n"
        "</rss>"
    )


def _json_feed_item(item: FeedItem) -> dict:
    entry = {
        "id": item.guid or item.link or str(uuid.uuid4()),
        "url": item.link,
        "title": linked_title(item),
        "content_html": item.content,
        "content_text": item.plain_summary,
        "date_published": item.published_iso or item.published,
        "author": {"name": item.author} if item.author else None,
        "tags": list(item.categories) if item.categories else None,
    }
    return {key: value for key, value in entry.items() if value is not None}


def render_json_feed(feed: MergedFeed, request_url: str) -> str:
    """Render the merged feed as a JSON Feed 1.1 document.

    Args:
        feed: The merged feed
        request_url: Canonical URL of the current request, used as feed_url

    Returns:
        JSON text
    """
    document = {
        "version": JSON_FEED_VERSION,
        "title": feed.title or DEFAULT_TITLE,
        "description": feed.description,
        "home_page_url": feed.link,
        "feed_url": request_url,
        "items": [_json_feed_item(item) for item in feed.items],
    }
    document = {key: value for key, value in document.items() if value is not None}
    return json.dumps(document, indent=2, ensure_ascii=False)
