"""Unit tests for the Lambda request handler."""

import json
import os
from unittest.mock import Mock, patch

import pytest

from feedmerge.codec import encode_feed_list
from feedmerge.lambda_handler import (
    BAD_PAYLOAD_MESSAGE,
    LOWERCASE_PAYLOAD_MESSAGE,
    NO_URLS_MESSAGE,
    get_query_params,
    get_request_url,
    lambda_handler,
)
from tests.conftest import FakeSession, make_response

FEED_1 = "http://localhost:9999/feed1.xml"
FEED_2 = "http://localhost:9999/feed2.xml"
FEED_3 = "http://localhost:9999/feed3.xml"
ODD_JSON_FEED = "https://json.example.com/odd.json"


def make_event(params=None, single=None):
    return {
        "path": "/api/merge",
        "headers": {"Host": "merge.example.com", "X-Forwarded-Proto": "https"},
        "multiValueQueryStringParameters": params,
        "queryStringParameters": single,
    }


@pytest.fixture
def fake_network(feed_routes):
    session = FakeSession(feed_routes)
    with patch.dict(os.environ, {}, clear=True):
        with patch("feedmerge.rss.requests.Session", return_value=session):
            yield session


class TestQueryParsing:
    """Unit tests for request parameter handling."""

    def test_multi_value_parameters(self):
        params = get_query_params(make_event({"url": ["a", "b"], "format": ["json"]}))
        assert params == {"url": ["a", "b"], "format": ["json"]}

    def test_single_value_parameters(self):
        params = get_query_params(make_event(single={"url": "a"}))
        assert params == {"url": ["a"]}

    def test_raw_query_string(self):
        params = get_query_params({"rawQueryString": "url=a&url=b"})
        assert params == {"url": ["a", "b"]}

    def test_request_url_from_headers(self):
        url = get_request_url(make_event(), {"url": ["http://x/feed"]})
        assert url == "https://merge.example.com/api/merge?url=http%3A%2F%2Fx%2Ffeed"

    def test_request_url_from_base_url(self):
        url = get_request_url(make_event(), {}, "https://feeds.example.org/")
        assert url == "https://feeds.example.org/api/merge"


class TestLambdaHandler:
    """Unit tests for lambda_handler responses."""

    def test_one_forbidden_feed_among_three(self, fake_network):
        event = make_event({"url": [FEED_1, FEED_2, FEED_3]})

        response = lambda_handler(event, Mock(aws_request_id="req-1"))
        text = response["body"]

        assert response["statusCode"] == 200
        assert "application/rss+xml" in response["headers"]["Content-Type"]
        assert response["headers"]["Cache-Control"] == "max-age=600, s-maxage=600"
        assert "Merged Feed" in text
        assert "⚠️ Failed to load feed" in text
        assert FEED_3 in text
        assert "Status code 403" in text
        assert "Article 1 from Feed 1" in text
        assert "Article 2 from Feed 1" in text
        assert "Article 1 from Feed 2" in text
        error_index = text.index("⚠️ Failed to load feed")
        assert error_index < text.index("Article 1 from Feed 1")
        assert error_index < text.index("Article 1 from Feed 2")
        assert "Combined feed from Feed 1, Feed 2 (1 feed(s) failed to load)" in text

    def test_json_format(self, fake_network):
        for output_format in ("json", "jsonfeed"):
            event = make_event({"url": [FEED_1], "format": [output_format]})

            response = lambda_handler(event, None)

            assert response["statusCode"] == 200
            assert response["headers"]["Content-Type"] == (
                "application/feed+json; charset=utf-8"
            )
            document = json.loads(response["body"])
            assert document["feed_url"].startswith("https://merge.example.com/api/merge?")
            assert document["items"][0]["title"] == (
                '<a href="http://localhost:9999/article1">Article 1 from Feed 1</a>'
            )

    def test_unknown_format_is_rss(self, fake_network):
        response = lambda_handler(make_event({"url": [FEED_1], "format": ["atom"]}), None)

        assert response["headers"]["Content-Type"] == "application/rss+xml; charset=utf-8"
        assert response["body"].startswith("<?xml")

    def test_compressed_feeds_parameter(self, fake_network):
        event = make_event({"feeds": [encode_feed_list([FEED_2])], "url": [FEED_1]})

        response = lambda_handler(event, None)

        assert response["statusCode"] == 200
        assert "Article 1 from Feed 2" in response["body"]
        assert "Article 1 from Feed 1" not in response["body"]

    def test_no_urls(self, fake_network):
        response = lambda_handler(make_event(), None)

        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {"error": NO_URLS_MESSAGE}
        assert fake_network.calls == []

    def test_undecodable_payload(self, fake_network):
        response = lambda_handler(make_event({"feeds": ["Not$Valid!Payload"]}), None)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert body == {"error": BAD_PAYLOAD_MESSAGE, "payload": "Not$Valid!Payload"}
        assert fake_network.calls == []

    def test_all_lowercase_payload_gets_hint(self, fake_network):
        payload = encode_feed_list([FEED_1]).lower()

        response = lambda_handler(make_event({"feeds": [payload]}), None)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert body["error"] == LOWERCASE_PAYLOAD_MESSAGE
        assert body["payload"] == payload

    def test_session_closed_after_request(self, fake_network):
        response = lambda_handler(make_event({"url": [FEED_1]}), None)

        assert response["statusCode"] == 200
        assert fake_network.closed

    def test_json_feed_with_non_string_fields_renders(self, fake_network):
        fake_network.routes[ODD_JSON_FEED] = make_response(
            200,
            json.dumps(
                {
                    "version": "https://jsonfeed.org/version/1.1",
                    "title": 42,
                    "items": [
                        {"id": "1", "title": 42, "url": 123, "author": {"name": 7}},
                        {"id": "2", "title": "Readable", "url": "https://json.example.com/2"},
                    ],
                }
            ),
            "application/feed+json",
        )

        for output_format in ("rss", "json"):
            event = make_event({"url": [ODD_JSON_FEED], "format": [output_format]})

            response = lambda_handler(event, None)

            assert response["statusCode"] == 200
            assert "Readable" in response["body"]
