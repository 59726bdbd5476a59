"""Source registry for earthquake data providers."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from datetime import timedelta


@dataclass(frozen=True)
class SourceConfig:
    """Configuration for a single earthquake data source."""

    name: str
    base_url: str
    refresh_interval_seconds: int
    max_retries: int
    retry_backoff_base: float
    rate_limit_rpm: int
    timeout_seconds: float

    @property
    def refresh_interval(self) -> timedelta:
        return timedelta(seconds=self.refresh_interval_seconds)


SOURCES: dict[str, SourceConfig] = {
    "kandilli": SourceConfig(
        name="kandilli",
        base_url="https://api.orhanaydogdu.com.tr/deprem",
        refresh_interval_seconds=300,
        # Transport failures wait for the next scheduled tick
        max_retries=0,
        retry_backoff_base=2.0,
        rate_limit_rpm=30,
        timeout_seconds=15,
    ),
}

DEFAULT_SOURCE = "kandilli"


def get_source(name: str = DEFAULT_SOURCE) -> SourceConfig:
    """Return the named source with environment overrides applied."""
    config = SOURCES[name]
    overrides: dict = {}
    if os.getenv("QUAKE_API_URL"):
        overrides["base_url"] = os.environ["QUAKE_API_URL"].rstrip("/")
    if os.getenv("QUAKE_TIMEOUT_SECONDS"):
        overrides["timeout_seconds"] = float(os.environ["QUAKE_TIMEOUT_SECONDS"])
    if os.getenv("QUAKE_MAX_RETRIES"):
        overrides["max_retries"] = int(os.environ["QUAKE_MAX_RETRIES"])
    if os.getenv("QUAKE_REFRESH_SECONDS"):
        overrides["refresh_interval_seconds"] = int(os.environ["QUAKE_REFRESH_SECONDS"])
    return replace(config, **overrides) if overrides else config
