"""Source feed fetching for the feed merger."""

import json

import feedparser
import requests

from .config import DEFAULT_USER_AGENT
from .logging_config import create_execution_logger
from .models import FeedKind, FetchFailure, FetchOutcome, FetchSuccess, SourceFeed
from .normalize import json_text, normalize_json_feed_item, normalize_rss_entry

ACCEPT_HEADER = "application/json, application/feed+json, */*"
JSON_CONTENT_TYPES = ("application/feed+json", "application/json")
JSON_FEED_VERSION_MARKER = "jsonfeed.org"


class FeedParseError(Exception):
    """Raised when a response body cannot be read as a feed."""


def detect_feed_kind(content_type: str | None, body: bytes | str) -> FeedKind:
    """Decide whether a response holds a JSON Feed or an RSS/Atom document.

    Only a JSON content type whose body declares a jsonfeed.org version is
    treated as JSON Feed; every other case falls back to RSS/Atom.
    """
    content_type = (content_type or "").lower()
    if not any(kind in content_type for kind in JSON_CONTENT_TYPES):
        return FeedKind.RSS

    try:
        data = json.loads(body)
    except (ValueError, TypeError, RecursionError):
        return FeedKind.RSS

    if not isinstance(data, dict):
        return FeedKind.RSS
    version = data.get("version")
    if isinstance(version, str) and JSON_FEED_VERSION_MARKER in version:
        return FeedKind.JSON_FEED
    return FeedKind.RSS


class FeedFetcher:
    """Fetches one source feed and turns it into a fetch outcome."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        execution_id: str | None = None,
    ):
        """Initialize FeedFetcher with configuration.

        Args:
            timeout: HTTP request timeout in seconds, applied per source
            user_agent: User-Agent header sent to feed servers
            execution_id: Execution ID for logging context
        """
        self.timeout = timeout
        self.logger = create_execution_logger("feed_fetcher", execution_id)
        self.session = requests.Session()
        self.session.headers.update(
            {"User-Agent": user_agent, "Accept": ACCEPT_HEADER}
        )

    def __enter__(self) -> "FeedFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the pooled connections of the HTTP session."""
        self.session.close()

    def fetch(self, feed_url: str) -> FetchOutcome:
        """Fetch and parse a single feed.

        Never raises: network, HTTP and parse errors are returned as
        ``FetchFailure``.

        Args:
            feed_url: URL of the RSS/Atom or JSON feed

        Returns:
            FetchSuccess with the parsed feed, or FetchFailure with a reason
        """
        self.logger.info("Fetching feed", feed_url=feed_url)

        try:
            response = self.session.get(feed_url, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.error(
                f"Failed to download feed {feed_url}: {e}",
                feed_url=feed_url,
                error=str(e),
            )
            return FetchFailure(feed_url, str(e))

        if not 200 <= response.status_code < 300:
            error = f"Status code {response.status_code}"
            self.logger.error(
                f"Failed to download feed {feed_url}: {error}",
                feed_url=feed_url,
                status_code=response.status_code,
            )
            return FetchFailure(feed_url, error)

        try:
            kind = detect_feed_kind(
                response.headers.get("content-type"), response.content
            )
            self.logger.debug(
                "Detected feed kind", feed_url=feed_url, feed_kind=kind.value
            )
            if kind is FeedKind.JSON_FEED:
                feed = self.parse_json_feed(feed_url, response.content)
            else:
                feed = self.parse_rss_feed(feed_url, response.content)
        except Exception as e:
            self.logger.error(
                f"Failed to parse feed {feed_url}: {e}",
                feed_url=feed_url,
                error=str(e),
            )
            return FetchFailure(feed_url, str(e))

        self.logger.log_feed_processing(feed_url, len(feed.items))
        return FetchSuccess(feed_url, feed)

    def parse_rss_feed(self, feed_url: str, body: bytes) -> SourceFeed:
        """Parse an RSS/Atom document.

        Raises:
            FeedParseError: If the body is not a recognizable feed
        """
        parsed = feedparser.parse(body)

        if parsed.bozo:
            if not parsed.entries and not parsed.feed.get("title"):
                raise FeedParseError(str(parsed.get("bozo_exception", "Feed not recognized")))
            self.logger.warning(
                f"Feed parsing warning for {feed_url}: {parsed.get('bozo_exception')}",
                feed_url=feed_url,
            )

        title = parsed.feed.get("title") or None
        items = []
        for entry in parsed.entries:
            try:
                items.append(normalize_rss_entry(entry, title, feed_url))
            except Exception as e:
                self.logger.warning(
                    f"Failed to normalize entry from {feed_url}: {e}",
                    feed_url=feed_url,
                    error=str(e),
                )
                continue

        return SourceFeed(
            url=feed_url,
            title=title,
            description=parsed.feed.get("description") or parsed.feed.get("subtitle"),
            home_link=parsed.feed.get("link"),
            items=tuple(items),
        )

    def parse_json_feed(self, feed_url: str, body: bytes) -> SourceFeed:
        """Parse a JSON Feed document.

        Raises:
            FeedParseError: If the body is not a JSON object
        """
        data = json.loads(body)
        if not isinstance(data, dict):
            raise FeedParseError("JSON Feed must be an object")

        title = json_text(data.get("title"))
        raw_items = data.get("items")
        if not isinstance(raw_items, list):
            raw_items = []

        items = []
        for item in raw_items:
            if not isinstance(item, dict):
                continue
            try:
                items.append(normalize_json_feed_item(item, title, feed_url))
            except Exception as e:
                self.logger.warning(
                    f"Failed to normalize entry from {feed_url}: {e}",
                    feed_url=feed_url,
                    error=str(e),
                )
                continue

        return SourceFeed(
            url=feed_url,
            title=title,
            description=json_text(data.get("description")),
            home_link=json_text(data.get("home_page_url")),
            items=tuple(items),
        )
