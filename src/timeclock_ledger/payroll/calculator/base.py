from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from ...attendance.model import ShiftEntry


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def is_complete(self, entry: ShiftEntry) -> bool:
        raise NotImplementedError

    @abstractmethod
    def worked_minutes(self, entry: ShiftEntry) -> int:
        raise NotImplementedError

    @abstractmethod
    def gross_pay(self, minutes: int, hourly_rate: Decimal) -> Decimal:
        raise NotImplementedError
