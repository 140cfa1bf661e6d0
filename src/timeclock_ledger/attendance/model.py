from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

from ..core.enums import LedgerErrorCode, Role


@dataclass(frozen=True)
class EditStamp:
    """Audit stamp left on an entry by every correction or clock-out."""

    user_id: str
    role: str
    at: int

    def to_record(self) -> dict:
        return {"user_id": self.user_id, "role": self.role, "at": self.at}

    @classmethod
    def from_record(cls, r: dict) -> "EditStamp":
        return cls(user_id=str(r["user_id"]), role=str(r["role"]), at=int(r["at"]))


@dataclass(frozen=True)
class ShiftEntry:
    """Domain entity: one clock session. Timestamps are epoch milliseconds."""

    id: str
    restaurant_id: str
    staff_id: str
    acting_user_id: str
    clock_in_at: int
    source: Role
    created_at: int
    updated_at: int
    clock_out_at: Optional[int] = None
    edited_by: Optional[EditStamp] = None
    note: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.clock_out_at is None

    def close(self, *, at: int, stamp: EditStamp) -> "ShiftEntry":
        return replace(self, clock_out_at=at, updated_at=at, edited_by=stamp)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "staff_id": self.staff_id,
            "acting_user_id": self.acting_user_id,
            "clock_in_at": self.clock_in_at,
            "clock_out_at": self.clock_out_at,
            "source": self.source.value,
            "edited_by": self.edited_by.to_record() if self.edited_by else None,
            "note": self.note,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_record(cls, r: dict) -> "ShiftEntry":
        out = r.get("clock_out_at")
        edited = r.get("edited_by")
        return cls(
            id=str(r["id"]),
            restaurant_id=str(r["restaurant_id"]),
            staff_id=str(r["staff_id"]),
            acting_user_id=str(r["acting_user_id"]),
            clock_in_at=int(r["clock_in_at"]),
            clock_out_at=int(out) if out is not None else None,
            source=Role(r["source"]),
            edited_by=EditStamp.from_record(edited) if edited else None,
            note=r.get("note"),
            created_at=int(r["created_at"]),
            updated_at=int(r["updated_at"]),
        )


@dataclass(frozen=True)
class ClockInResult:
    ok: bool
    entry: Optional[ShiftEntry] = None
    error: Optional[LedgerErrorCode] = None
    open_entry_id: Optional[str] = None


@dataclass(frozen=True)
class ClockOutResult:
    ok: bool
    entry: Optional[ShiftEntry] = None
    error: Optional[LedgerErrorCode] = None


@dataclass(frozen=True)
class DayRow:
    """An entry with its worked minutes; ``minutes`` is None while the shift is open."""

    entry: ShiftEntry
    minutes: Optional[int]


@dataclass(frozen=True)
class StaffDayGroup:
    staff_id: str
    rows: list[DayRow]
    total_minutes: int
    open_count: int


@dataclass(frozen=True)
class RestaurantDaySummary:
    restaurant_id: str
    day: str
    rows: list[DayRow]
    groups: list[StaffDayGroup]
