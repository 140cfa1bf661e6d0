"""Key layout of the ledger store."""

from __future__ import annotations

from .store import KvKey

ENTRY = "time_entry"
OPEN_BY_STAFF = "time_open_by_staff"
LAST_CLOSED_BY_STAFF = "time_last_closed_by_staff"
BY_RESTAURANT_DAY = "time_by_restaurant_day"
BY_STAFF_DAY = "time_by_staff_day"
HOURLY_RATE = "staff_hourly_rate"


def entry_key(entry_id: str) -> KvKey:
    return (ENTRY, entry_id)


def open_pointer_key(staff_id: str) -> KvKey:
    return (OPEN_BY_STAFF, staff_id)


def last_closed_key(staff_id: str) -> KvKey:
    return (LAST_CLOSED_BY_STAFF, staff_id)


def restaurant_day_key(restaurant_id: str, day: str, entry_id: str) -> KvKey:
    return (BY_RESTAURANT_DAY, restaurant_id, day, entry_id)


def restaurant_day_prefix(restaurant_id: str, day: str) -> KvKey:
    return (BY_RESTAURANT_DAY, restaurant_id, day)


def staff_day_key(staff_id: str, day: str, entry_id: str) -> KvKey:
    return (BY_STAFF_DAY, staff_id, day, entry_id)


def staff_day_prefix(staff_id: str, day: str) -> KvKey:
    return (BY_STAFF_DAY, staff_id, day)


def hourly_rate_key(staff_id: str) -> KvKey:
    return (HOURLY_RATE, staff_id)
