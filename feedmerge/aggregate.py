"""Aggregation of many source feeds into one merged feed."""

import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from email.utils import format_datetime

from .logging_config import create_execution_logger
from .models import FeedItem, FetchFailure, FetchOutcome, FetchSuccess, MergedFeed, to_iso
from .rss import FeedFetcher
from .serialize import escape_xml

FEED_TITLE = "Merged Feed"
FAILED_TITLE_PREFIX = "⚠️ Failed to load feed: "


def build_error_item(failure: FetchFailure, now: datetime | None = None) -> FeedItem:
    """Build the placeholder item shown for a source that failed to load.

    The guid combines the URL, a millisecond timestamp and a random UUID so
    it never matches a real item or another failure of the same request.
    """
    now = now or datetime.now(UTC)
    millis = int(now.timestamp() * 1000)
    return FeedItem(
        title=f"{FAILED_TITLE_PREFIX}{failure.url}",
        link=failure.url,
        published=format_datetime(now.astimezone(UTC), usegmt=True),
        published_iso=to_iso(now),
        plain_summary=f"Error: {failure.error}",
        content=(
            "<p>Failed to load this feed:</p>"
            f"<p><code>{escape_xml(failure.url)}</code></p>"
            f"<p>Error: {escape_xml(failure.error)}</p>"
        ),
        guid=f"error-{failure.url}-{millis}-{uuid.uuid4().hex}",
    )


def sort_by_recency(items: list[FeedItem]) -> list[FeedItem]:
    """Sort items newest first; undated items keep their order at the end."""
    return sorted(items, key=lambda item: item.effective_timestamp(), reverse=True)


def describe_sources(outcomes: list[FetchOutcome]) -> str:
    titles = [
        outcome.feed.title
        for outcome in outcomes
        if isinstance(outcome, FetchSuccess) and outcome.feed.title
    ]
    failures = sum(1 for outcome in outcomes if isinstance(outcome, FetchFailure))

    description = f"Combined feed from {', '.join(titles)}"
    if failures:
        description += f" ({failures} feed(s) failed to load)"
    return description


class FeedAggregator:
    """Fetches all requested sources concurrently and merges their items."""

    def __init__(
        self,
        fetcher: FeedFetcher,
        max_items: int = 100,
        max_workers: int = 16,
        execution_id: str | None = None,
    ):
        """Initialize the aggregator.

        Args:
            fetcher: Fetcher used for every source URL
            max_items: Cap on the number of items in the merged feed
            max_workers: Upper bound on concurrent fetches
            execution_id: Execution ID for logging context
        """
        self.fetcher = fetcher
        self.max_items = max_items
        self.max_workers = max_workers
        self.logger = create_execution_logger("aggregator", execution_id)

    def fetch_all(self, feed_urls: list[str]) -> list[FetchOutcome]:
        """Fetch every URL concurrently and wait for all of them to settle.

        Returns:
            One outcome per URL, in input order
        """
        if not feed_urls:
            return []

        workers = min(len(feed_urls), self.max_workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.fetcher.fetch, feed_urls))

    def aggregate(self, feed_urls: list[str], request_url: str) -> MergedFeed:
        """Build the merged feed for the given source URLs.

        Args:
            feed_urls: Source feed URLs, in request order
            request_url: Canonical URL of the current request

        Returns:
            MergedFeed with failure items first, then items newest first
        """
        self.logger.log_execution_start(feed_count=len(feed_urls))

        outcomes = self.fetch_all(feed_urls)

        items: list[FeedItem] = []
        failures: list[FetchFailure] = []
        for outcome in outcomes:
            if isinstance(outcome, FetchFailure):
                failures.append(outcome)
            else:
                items.extend(outcome.feed.items)

        now = datetime.now(UTC)
        error_items = [build_error_item(failure, now) for failure in failures]
        merged_items = error_items + sort_by_recency(items)

        self.logger.log_metrics(
            {
                "feeds_requested": len(feed_urls),
                "feeds_failed": len(failures),
                "items_found": len(items),
                "items_returned": min(len(merged_items), self.max_items),
            }
        )
        self.logger.log_execution_end(success=not failures)

        return MergedFeed(
            title=FEED_TITLE,
            description=describe_sources(outcomes),
            link=request_url,
            items=merged_items[: self.max_items],
            failures=len(failures),
        )
