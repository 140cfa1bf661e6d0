from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Who initiated a clock event or a correction."""

    STAFF = "staff"
    MANAGER = "manager"
    OWNER = "owner"


class LedgerErrorCode(str, Enum):
    """Typed, non-fatal outcomes returned by ledger operations."""

    ALREADY_OPEN = "already_open"
    NO_OPEN = "no_open"
    NOT_FOUND = "not_found"
    ALREADY_CLOSED = "already_closed"
    CONFLICT_OPEN = "conflict_open"
    CONCURRENT_EDIT = "concurrent_edit"
