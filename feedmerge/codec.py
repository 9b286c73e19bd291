"""Compact encoding of feed URL lists for the ``feeds`` query parameter."""

import json

from lzstring import LZString

_lz = LZString()


class FeedsPayloadError(ValueError):
    """Raised when a ``feeds`` payload cannot be decoded into a URL list."""


def encode_feed_list(urls: list[str]) -> str:
    """Compress a list of feed URLs into a URL-safe string."""
    return _lz.compressToEncodedURIComponent(json.dumps(list(urls)))


def decode_feed_list(payload: str) -> list[str]:
    """Decode a ``feeds`` payload back into the list of feed URLs.

    Raises:
        FeedsPayloadError: If the payload does not decompress to a JSON array
            of strings
    """
    try:
        decompressed = _lz.decompressFromEncodedURIComponent(payload)
    except Exception as e:
        raise FeedsPayloadError(f"Failed to decompress feeds: {e}") from e

    if not decompressed:
        raise FeedsPayloadError("Failed to decompress feeds")

    try:
        urls = json.loads(decompressed)
    except ValueError as e:
        raise FeedsPayloadError(f"Invalid feeds JSON: {e}") from e

    if not isinstance(urls, list) or not all(isinstance(url, str) for url in urls):
        raise FeedsPayloadError("Feeds payload must be a JSON array of URLs")

    return urls
