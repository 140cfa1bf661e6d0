from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..core.constants import NOTE_MAX_LENGTH
from ..core.exceptions import ValidationError

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_day_key(value: str, field_name: str = "day") -> str:
    day = require_non_empty(value, field_name)
    if not _DAY_RE.match(day):
        raise ValidationError(f"{field_name} must be YYYY-MM-DD")
    return day


def require_month_key(value: str, field_name: str = "month") -> str:
    month = require_non_empty(value, field_name)
    if not _MONTH_RE.match(month) or not 1 <= int(month[5:7]) <= 12:
        raise ValidationError(f"{field_name} must be YYYY-MM")
    return month


def require_timestamp_ms(value, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} must be a timestamp in milliseconds")
    if not math.isfinite(value) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative timestamp")
    return int(value)


def require_hourly_rate(value) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError("hourly_rate must be a number")
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("hourly_rate must be a number")
    if not rate.is_finite() or rate < 0:
        raise ValidationError("hourly_rate must be a finite, non-negative number")
    return rate


def clean_note(value: Optional[str]) -> Optional[str]:
    """Trim a free-text note; empty notes become None."""
    if value is None:
        return None
    note = str(value).strip()
    return note[:NOTE_MAX_LENGTH] or None
