"""Configuration management for the feed merger."""

import os
from dataclasses import dataclass

DEFAULT_USER_AGENT = "rssrssrssrss/1.0 (Feed merger)"


@dataclass
class FetchConfig:
    """Configuration for fetching source feeds."""

    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    max_workers: int = 16


@dataclass
class OutputConfig:
    """Configuration for the merged output."""

    max_items: int = 100
    cache_max_age: int = 600
    base_url: str | None = None


def _read_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


class Config:
    """Main configuration manager."""

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.fetch_timeout = _read_number("FEEDMERGE_FETCH_TIMEOUT", 30.0, float)
        self.max_items = _read_number("FEEDMERGE_MAX_ITEMS", 100, int)
        self.max_workers = _read_number("FEEDMERGE_MAX_WORKERS", 16, int)
        self.cache_max_age = _read_number("FEEDMERGE_CACHE_MAX_AGE", 600, int)
        self.user_agent = os.getenv("FEEDMERGE_USER_AGENT") or DEFAULT_USER_AGENT
        self.base_url = os.getenv("FEEDMERGE_BASE_URL") or None
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

    def get_fetch_config(self) -> FetchConfig:
        """Get fetch configuration."""
        return FetchConfig(
            timeout=self.fetch_timeout,
            user_agent=self.user_agent,
            max_workers=self.max_workers,
        )

    def get_output_config(self) -> OutputConfig:
        """Get output configuration."""
        return OutputConfig(
            max_items=self.max_items,
            cache_max_age=self.cache_max_age,
            base_url=self.base_url,
        )
