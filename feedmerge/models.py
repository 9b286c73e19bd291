"""Data models for the feed merger."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from dateutil import parser as date_parser

# Ordering sentinel for items without a usable date
OLDEST = datetime.min.replace(tzinfo=UTC)


class FeedKind(Enum):
    """Syndication format of a fetched source."""

    JSON_FEED = "jsonfeed"
    RSS = "rss"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a feed date string into an aware datetime, or None if unusable."""
    if not value:
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class FeedItem:
    """Represents a single item of the merged feed."""

    title: str | None = None
    link: str | None = None
    published: str | None = None  # literal date string from the source
    published_iso: str | None = None
    content: str | None = None
    plain_summary: str | None = None
    author: str | None = None
    guid: str | None = None
    categories: list[str] = field(default_factory=list)
    source_feed_title: str | None = None
    source_feed_url: str | None = None

    def effective_timestamp(self) -> datetime:
        """Timestamp used for ordering: ISO instant, then literal date, then OLDEST."""
        return (
            parse_timestamp(self.published_iso)
            or parse_timestamp(self.published)
            or OLDEST
        )


@dataclass(frozen=True)
class SourceFeed:
    """A successfully fetched and normalized source feed."""

    url: str
    title: str | None = None
    description: str | None = None
    home_link: str | None = None
    items: tuple[FeedItem, ...] = ()


@dataclass(frozen=True)
class FetchSuccess:
    """Outcome of a source that was fetched and parsed."""

    url: str
    feed: SourceFeed


@dataclass(frozen=True)
class FetchFailure:
    """Outcome of a source that could not be fetched or parsed."""

    url: str
    error: str


FetchOutcome = FetchSuccess | FetchFailure


@dataclass
class MergedFeed:
    """Represents the aggregated feed for one request."""

    title: str
    description: str
    link: str
    items: list[FeedItem]
    failures: int = 0


def to_iso(moment: datetime) -> str:
    """Render an aware datetime as an ISO 8601 UTC instant."""
    return moment.astimezone(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")
