from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..attendance.model import ShiftEntry
from ..core.enums import LedgerErrorCode, Role


class _Keep:
    """Marker for "leave this field as it is"; ``None`` means clear it."""

    _instance: Optional["_Keep"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "KEEP"

    def __bool__(self) -> bool:
        return False


KEEP = _Keep()


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role


@dataclass(frozen=True)
class ManualEntryResult:
    ok: bool
    row: Optional[ShiftEntry] = None
    error: Optional[LedgerErrorCode] = None
    open: Optional[ShiftEntry] = None
