from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ...attendance.model import ShiftEntry
from ...core.constants import MINUTES_PER_HOUR, MS_PER_MINUTE
from .base import PayrollCalculator

CENTS = Decimal("0.01")


def minutes_to_hours(minutes: int) -> Decimal:
    return (Decimal(minutes) / MINUTES_PER_HOUR).quantize(CENTS, rounding=ROUND_HALF_UP)


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: whole minutes between clock-in and clock-out, not below 0."""

    def is_complete(self, entry: ShiftEntry) -> bool:
        return entry.clock_out_at is not None and entry.clock_out_at >= entry.clock_in_at

    def worked_minutes(self, entry: ShiftEntry) -> int:
        if entry.clock_out_at is None:
            return 0
        return max(0, (entry.clock_out_at - entry.clock_in_at) // MS_PER_MINUTE)

    def gross_pay(self, minutes: int, hourly_rate: Decimal) -> Decimal:
        return (Decimal(minutes) * hourly_rate / MINUTES_PER_HOUR).quantize(CENTS, rounding=ROUND_HALF_UP)
