from __future__ import annotations

from typing import Optional, Sequence

from ..common.datetime_utils import month_days
from ..common.validators import require_day_key, require_month_key, require_non_empty
from ..payroll.calculator.base import PayrollCalculator
from ..payroll.calculator.standard_calculator import StandardPayrollCalculator
from .model import DayRow, RestaurantDaySummary, ShiftEntry, StaffDayGroup
from .repository import ShiftRepository


class DayQueryService:
    """Calendar reads over the day indices. Results are ordered by clock-in."""

    def __init__(self, entries: ShiftRepository, *, calculator: Optional[PayrollCalculator] = None):
        self._entries = entries
        self._calculator = calculator or StandardPayrollCalculator()

    def get_entry(self, entry_id: str) -> Optional[ShiftEntry]:
        return self._entries.get_entry(require_non_empty(entry_id, "entry_id"))

    def list_by_restaurant_day(self, restaurant_id: str, day: str) -> Sequence[ShiftEntry]:
        return self._entries.list_by_restaurant_day(
            require_non_empty(restaurant_id, "restaurant_id"),
            require_day_key(day),
        )

    def list_by_staff_day(self, staff_id: str, day: str) -> Sequence[ShiftEntry]:
        return self._entries.list_by_staff_day(
            require_non_empty(staff_id, "staff_id"),
            require_day_key(day),
        )

    def list_month_rows(self, restaurant_id: str, month: str) -> list[ShiftEntry]:
        """Every entry of a restaurant filed under a day of ``month`` (YYYY-MM)."""
        restaurant_id = require_non_empty(restaurant_id, "restaurant_id")
        rows: list[ShiftEntry] = []
        for day in month_days(require_month_key(month)):
            rows.extend(self._entries.list_by_restaurant_day(restaurant_id, day))
        return rows

    def summarize_restaurant_day(self, restaurant_id: str, day: str) -> RestaurantDaySummary:
        """Manager's day view: every row with its minutes, grouped by staff member.

        Groups follow each staff member's first clock-in of the day. Totals
        count closed entries only; open ones are tallied in ``open_count``.
        """
        entries = self.list_by_restaurant_day(restaurant_id, day)

        rows: list[DayRow] = []
        by_staff: dict[str, list[DayRow]] = {}
        for e in entries:
            minutes = self._calculator.worked_minutes(e) if self._calculator.is_complete(e) else None
            row = DayRow(entry=e, minutes=minutes)
            rows.append(row)
            by_staff.setdefault(e.staff_id, []).append(row)

        groups = [
            StaffDayGroup(
                staff_id=staff_id,
                rows=staff_rows,
                total_minutes=sum(r.minutes or 0 for r in staff_rows),
                open_count=sum(1 for r in staff_rows if r.entry.is_open),
            )
            for staff_id, staff_rows in by_staff.items()
        ]
        return RestaurantDaySummary(restaurant_id=restaurant_id.strip(), day=day, rows=rows, groups=groups)
