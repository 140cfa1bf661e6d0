from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ..attendance.model import ShiftEntry
from ..attendance.query import DayQueryService
from ..common.datetime_utils import day_key, get_zone, month_of_day
from ..common.log import get_logger
from ..common.validators import require_month_key, require_non_empty
from ..core.constants import DEFAULT_BUSINESS_TIMEZONE
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator, minutes_to_hours
from .model import PayrollReport, PayrollRow, PayrollTotals, StaffRef
from .rates import RateStore

logger = get_logger(__name__)


class PayrollAggregator:
    """Monthly rollup of worked minutes into gross pay.

    Only closed entries count towards minutes; open or malformed ones are
    reported back in ``incomplete_entries`` so they can be fixed. Entries of
    another restaurant or month are ignored.
    """

    def __init__(
        self,
        rates: RateStore,
        *,
        calculator: Optional[PayrollCalculator] = None,
        timezone: str = DEFAULT_BUSINESS_TIMEZONE,
    ):
        self._rates = rates
        self._calculator = calculator or StandardPayrollCalculator()
        self._timezone = get_zone(timezone).key

    def compute_payroll_for_month(
        self,
        restaurant_id: str,
        month: str,
        staff_list: Iterable[StaffRef],
        rows: Iterable[ShiftEntry],
    ) -> PayrollReport:
        restaurant_id = require_non_empty(restaurant_id, "restaurant_id")
        month = require_month_key(month)
        staff_by_id: dict[str, StaffRef] = {s.id: s for s in staff_list}

        minutes_by_staff: dict[str, int] = {sid: 0 for sid in staff_by_id}
        incomplete_by_staff: dict[str, int] = {sid: 0 for sid in staff_by_id}
        incomplete: list[ShiftEntry] = []
        skipped = 0

        for e in rows:
            if e.restaurant_id != restaurant_id or month_of_day(day_key(e.clock_in_at, self._timezone)) != month:
                skipped += 1
                continue

            minutes_by_staff.setdefault(e.staff_id, 0)
            incomplete_by_staff.setdefault(e.staff_id, 0)

            if not self._calculator.is_complete(e):
                incomplete.append(e)
                incomplete_by_staff[e.staff_id] += 1
                continue
            minutes_by_staff[e.staff_id] += self._calculator.worked_minutes(e)

        if skipped:
            logger.debug("payroll ignored foreign rows", extra={"restaurant_id": restaurant_id, "month": month, "count": skipped})

        ordered = list(staff_by_id) + sorted(sid for sid in minutes_by_staff if sid not in staff_by_id)
        per_staff = [self._row(sid, staff_by_id.get(sid), minutes_by_staff[sid], incomplete_by_staff[sid]) for sid in ordered]
        incomplete.sort(key=lambda e: (e.clock_in_at, e.id))

        return PayrollReport(
            restaurant_id=restaurant_id,
            month=month,
            per_staff=per_staff,
            totals=self._totals(per_staff),
            incomplete_entries=incomplete,
        )

    def _row(self, staff_id: str, ref: Optional[StaffRef], minutes: int, incomplete_count: int) -> PayrollRow:
        rate = self._rates.get_hourly_rate(staff_id) or Decimal("0")
        return PayrollRow(
            staff_id=staff_id,
            staff_name=ref.display_name if ref else staff_id,
            minutes=minutes,
            hours=minutes_to_hours(minutes),
            hourly_rate=rate,
            gross_pay=self._calculator.gross_pay(minutes, rate),
            incomplete_count=incomplete_count,
        )

    @staticmethod
    def _totals(per_staff: Sequence[PayrollRow]) -> PayrollTotals:
        minutes = sum(r.minutes for r in per_staff)
        return PayrollTotals(
            staff_count=len(per_staff),
            minutes=minutes,
            hours=minutes_to_hours(minutes),
            gross_pay=sum((r.gross_pay for r in per_staff), Decimal("0")),
            incomplete_count=sum(r.incomplete_count for r in per_staff),
        )


class PayrollReportService:
    def __init__(self, query: DayQueryService, aggregator: PayrollAggregator):
        self._query = query
        self._aggregator = aggregator

    def build_month_report(self, restaurant_id: str, month: str, staff_list: Iterable[StaffRef] = ()) -> PayrollReport:
        rows = self._query.list_month_rows(restaurant_id, month)
        return self._aggregator.compute_payroll_for_month(restaurant_id, month, staff_list, rows)
