"""Shared fixtures for feed merger tests."""

from unittest.mock import Mock

import pytest
import requests
from requests.structures import CaseInsensitiveDict

RSS_FEED_1 = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Feed 1</title>
    <description>First feed</description>
    <link>http://localhost:9999</link>
    <item>
      <title>Article 1 from Feed 1</title>
      <link>http://localhost:9999/article1</link>
      <description>Content of article 1</description>
      <pubDate>Tue, 28 Oct 2025 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Article 2 from Feed 1</title>
      <link>http://localhost:9999/article2</link>
      <description>Content of article 2</description>
      <pubDate>Mon, 27 Oct 2025 10:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>"""

RSS_FEED_2 = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Feed 2</title>
    <description>Second feed</description>
    <link>http://localhost:9999</link>
    <item>
      <title>Article 1 from Feed 2</title>
      <link>http://localhost:9999/feed2/article1</link>
      <description>Content of feed 2 article 1</description>
      <pubDate>Wed, 29 Oct 2025 15:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>"""

JSON_FEED = """{
  "version": "https://jsonfeed.org/version/1.1",
  "title": "JSON Source",
  "home_page_url": "https://json.example.com/",
  "description": "A JSON feed",
  "items": [
    {
      "id": "json-1",
      "url": "https://json.example.com/posts/1",
      "title": "First JSON post",
      "content_html": "<table><tr><td>ad</td></tr></table><div class=\\"md\\"><p>Real body</p>",
      "date_published": "2025-10-30T08:00:00Z",
      "author": {"name": "Jane"},
      "tags": ["python", "feeds"]
    },
    {
      "id": "json-2",
      "external_url": "https://elsewhere.example.com/2",
      "title": "Second JSON post",
      "content_text": "Just text",
      "date_published": "2025-10-01T08:00:00Z"
    }
  ]
}"""


def make_response(status_code=200, body="", content_type="application/rss+xml"):
    """Build a stand-in for ``requests.Response``."""
    response = Mock()
    response.status_code = status_code
    response.headers = CaseInsensitiveDict({"Content-Type": content_type})
    response.content = body.encode("utf-8") if isinstance(body, str) else body
    return response


class FakeSession:
    """Replacement for ``requests.Session`` serving canned responses by URL."""

    def __init__(self, routes):
        self.routes = routes
        self.headers = CaseInsensitiveDict()
        self.calls = []
        self.closed = False

    def get(self, url, timeout=None, **kwargs):
        self.calls.append((url, timeout))
        route = self.routes.get(url)
        if route is None:
            return make_response(404, "Not found", "text/plain")
        if isinstance(route, Exception):
            raise route
        return route

    def close(self):
        self.closed = True


@pytest.fixture
def feed_routes():
    """Two healthy RSS feeds and one forbidden feed."""
    return {
        "http://localhost:9999/feed1.xml": make_response(200, RSS_FEED_1),
        "http://localhost:9999/feed2.xml": make_response(200, RSS_FEED_2),
        "http://localhost:9999/feed3.xml": make_response(403, "Forbidden", "text/plain"),
        "https://json.example.com/feed.json": make_response(
            200, JSON_FEED, "application/feed+json"
        ),
        "http://down.example.com/feed": requests.ConnectionError("Connection refused"),
    }
