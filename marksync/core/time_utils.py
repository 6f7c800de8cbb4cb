from __future__ import annotations

import time
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def now_ms() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return time.time_ns() // 1_000_000


def ms_to_datetime(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=UTC)
