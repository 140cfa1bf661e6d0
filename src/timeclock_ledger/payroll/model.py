from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from ..attendance.model import ShiftEntry


@dataclass(frozen=True)
class StaffRef:
    """Staff directory entry as handed in by the caller."""

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or self.id


@dataclass(frozen=True)
class PayrollRow:
    staff_id: str
    staff_name: str
    minutes: int
    hours: Decimal
    hourly_rate: Decimal
    gross_pay: Decimal
    incomplete_count: int


@dataclass(frozen=True)
class PayrollTotals:
    staff_count: int
    minutes: int
    hours: Decimal
    gross_pay: Decimal
    incomplete_count: int


@dataclass(frozen=True)
class PayrollReport:
    restaurant_id: str
    month: str
    per_staff: list[PayrollRow]
    totals: PayrollTotals
    incomplete_entries: list[ShiftEntry] = field(default_factory=list)
