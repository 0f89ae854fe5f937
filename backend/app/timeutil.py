"""Epoch-millisecond helpers. All wire-level instants are integer milliseconds."""

import time
from datetime import datetime, tzinfo

MINUTE_MS = 60 * 1000
DAY_MS = 24 * 60 * MINUTE_MS


def now_ms() -> int:
    return int(time.time() * 1000)


def to_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def from_ms(value: int, tz: tzinfo | None = None) -> datetime:
    # tz=None yields a naive datetime in the server's local zone
    return datetime.fromtimestamp(value / 1000, tz=tz)
