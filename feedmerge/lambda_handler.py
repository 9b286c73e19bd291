"""Lambda handler serving the merged feed over API Gateway."""

import json
import os
from datetime import UTC, datetime
from typing import Any
from urllib.parse import parse_qs, urlencode

from .aggregate import FeedAggregator
from .codec import FeedsPayloadError, decode_feed_list
from .config import Config
from .logging_config import create_execution_logger, setup_structured_logging
from .rss import FeedFetcher
from .serialize import GENERATOR, render_json_feed, render_rss

setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))

RSS_CONTENT_TYPE = "application/rss+xml; charset=utf-8"
JSON_FEED_CONTENT_TYPE = "application/feed+json; charset=utf-8"
JSON_FORMATS = ("json", "jsonfeed")

NO_URLS_MESSAGE = "No RSS feed URLs provided"
LOWERCASE_PAYLOAD_MESSAGE = (
    "The payload you've pasted is all lowercase, which is a common issue with "
    "Safari copy/paste. Please try again with a different browser."
)
BAD_PAYLOAD_MESSAGE = (
    f"{GENERATOR} cannot parse that payload. "
    "Are you sure you copied/pasted it correctly?"
)


def get_query_params(event: dict[str, Any]) -> dict[str, list[str]]:
    """Collect query parameters from an API Gateway event as lists of values."""
    multi = event.get("multiValueQueryStringParameters")
    if multi:
        return {key: list(values or []) for key, values in multi.items()}

    raw_query = event.get("rawQueryString")
    if raw_query:
        return parse_qs(raw_query)

    single = event.get("queryStringParameters") or {}
    return {key: [value] for key, value in single.items() if value is not None}


def get_request_url(
    event: dict[str, Any], params: dict[str, list[str]], base_url: str | None = None
) -> str:
    """Rebuild the canonical URL of the current request."""
    if base_url:
        root = base_url.rstrip("/")
    else:
        headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
        proto = headers.get("x-forwarded-proto", "https")
        host = headers.get("host", "localhost")
        root = f"{proto}://{host}"

    path = event.get("path") or event.get("rawPath") or "/"
    url = f"{root}{path}"
    if params:
        url += "?" + urlencode(params, doseq=True)
    return url


def resolve_feed_urls(params: dict[str, list[str]]) -> list[str]:
    """Resolve the source URLs from the ``feeds`` or ``url`` parameters.

    Raises:
        FeedsPayloadError: If a ``feeds`` payload is present but unreadable
    """
    feeds = params.get("feeds")
    if feeds and feeds[0]:
        return decode_feed_list(feeds[0])
    return [url for url in params.get("url", []) if url]


def error_response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Lambda handler that merges the requested feeds into one document.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        API Gateway proxy response
    """
    execution_id = f"lambda_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    main_logger = create_execution_logger("main", execution_id)
    main_logger.log_execution_start(
        lambda_request_id=getattr(context, "aws_request_id", "unknown"),
    )

    params = get_query_params(event)

    try:
        feed_urls = resolve_feed_urls(params)
    except FeedsPayloadError as e:
        payload = params["feeds"][0]
        main_logger.warning(f"Could not decode feeds payload: {e}", error=str(e))
        if payload.lower() == payload:
            message = LOWERCASE_PAYLOAD_MESSAGE
        else:
            message = BAD_PAYLOAD_MESSAGE
        main_logger.log_execution_end(success=False)
        return error_response(400, {"error": message, "payload": payload})

    if not feed_urls:
        main_logger.warning(NO_URLS_MESSAGE)
        main_logger.log_execution_end(success=False)
        return error_response(400, {"error": NO_URLS_MESSAGE})

    output_format = (params.get("format") or ["rss"])[0]

    try:
        config = Config()
        fetch_config = config.get_fetch_config()
        output_config = config.get_output_config()
        request_url = get_request_url(event, params, output_config.base_url)

        with FeedFetcher(
            timeout=fetch_config.timeout,
            user_agent=fetch_config.user_agent,
            execution_id=execution_id,
        ) as fetcher:
            aggregator = FeedAggregator(
                fetcher,
                max_items=output_config.max_items,
                max_workers=fetch_config.max_workers,
                execution_id=execution_id,
            )
            merged = aggregator.aggregate(feed_urls, request_url)

        if output_format in JSON_FORMATS:
            body = render_json_feed(merged, request_url)
            content_type = JSON_FEED_CONTENT_TYPE
        else:
            body = render_rss(merged, request_url)
            content_type = RSS_CONTENT_TYPE
    except Exception as e:
        error_msg = f"Critical error in Lambda handler: {str(e)}"
        main_logger.error(error_msg, error=str(e))
        main_logger.log_execution_end(success=False, error=error_msg)
        return error_response(500, {"error": error_msg})

    main_logger.log_execution_end(
        success=True, item_count=len(merged.items), failures=merged.failures
    )

    max_age = output_config.cache_max_age
    return {
        "statusCode": 200,
        "headers": {
            "Content-Type": content_type,
            "Cache-Control": f"max-age={max_age}, s-maxage={max_age}",
        },
        "body": body,
    }
