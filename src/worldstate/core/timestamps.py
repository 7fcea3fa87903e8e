"""
Minute buckets and UTC timestamp utilities.

The pipeline runs once per minute; everything it produces is keyed by the
minute bucket ``YYYY-MM-DDTHH:MM`` (UTC, seconds dropped). The clock is an
injected dependency so tests can pin the bucket.

Features:
    - **utc_now():** Timezone-aware UTC datetime
    - **minute_bucket():** Stable string within the same minute
    - **bucket_to_iso() / iso_to_epoch():** Artifact timestamp helpers
    - **SystemClock / FixedClock:** Clock implementations

Tags:
    timestamps, clock, utc, minute-bucket
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Protocol

BUCKET_FORMAT = "%Y-%m-%dT%H:%M"


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def minute_bucket(dt: datetime | None = None) -> str:
    """
    ISO 8601 up to minutes, in UTC.

    >>> minute_bucket(datetime(2025, 11, 14, 12, 34, 56, tzinfo=UTC))
    '2025-11-14T12:34'
    """
    dt = dt or utc_now()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).strftime(BUCKET_FORMAT)


def bucket_to_iso(bucket: str) -> str:
    """``2025-11-14T12:34`` → ``2025-11-14T12:34:00Z``."""
    return f"{bucket}:00Z"


def iso_to_epoch(timestamp: str) -> int:
    """Epoch seconds (floored) of an ISO 8601 timestamp; ``Z`` suffix allowed."""
    dt = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return math.floor(dt.timestamp())


class Clock(Protocol):
    """Supplies the current minute bucket."""

    def minute_bucket(self) -> str:
        ...


class SystemClock:
    """Wall-clock minute buckets."""

    def minute_bucket(self) -> str:
        return minute_bucket(utc_now())


class FixedClock:
    """Always returns the same bucket; used by tests and replays."""

    def __init__(self, bucket: str):
        self.bucket = bucket

    def minute_bucket(self) -> str:
        return self.bucket

    def __repr__(self) -> str:
        return f"FixedClock({self.bucket!r})"


__all__ = [
    "BUCKET_FORMAT",
    "utc_now",
    "minute_bucket",
    "bucket_to_iso",
    "iso_to_epoch",
    "Clock",
    "SystemClock",
    "FixedClock",
]
