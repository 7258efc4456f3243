from __future__ import annotations

import time
from datetime import datetime, timezone

DAY_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def days_to_ms(days: int) -> int:
    return int(days) * DAY_MS


def year_of(ts_ms: int) -> int:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).year
