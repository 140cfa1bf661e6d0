from __future__ import annotations

import calendar
import time
from datetime import date, datetime
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.constants import DAY_KEY_FORMAT
from ..core.exceptions import ValidationError


@lru_cache(maxsize=32)
def get_zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {tz_name}")


def now_ms() -> int:
    """Current epoch time in milliseconds.

    Note: Wrapped so tests can patch/mock easier.
    """
    return time.time_ns() // 1_000_000


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, DAY_KEY_FORMAT).date()


def day_key(ms: int, tz_name: str) -> str:
    """Calendar day (YYYY-MM-DD) an epoch-ms instant falls on in ``tz_name``."""
    return datetime.fromtimestamp(ms / 1000, tz=get_zone(tz_name)).strftime(DAY_KEY_FORMAT)


def month_of_day(day: str) -> str:
    return day[:7]


def month_days(month: str) -> list[str]:
    """All day keys of a YYYY-MM month, in order."""
    year, mon = int(month[:4]), int(month[5:7])
    _, last = calendar.monthrange(year, mon)
    return [date(year, mon, d).strftime(DAY_KEY_FORMAT) for d in range(1, last + 1)]


def local_ms(day: str, hour: int, minute: int, tz_name: str) -> int:
    """Epoch ms of a wall-clock time on ``day`` in ``tz_name``."""
    d = parse_iso_date(day)
    local = datetime(d.year, d.month, d.day, hour, minute, tzinfo=get_zone(tz_name))
    return int(local.timestamp() * 1000)
