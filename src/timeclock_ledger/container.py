from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.query import DayQueryService
from .attendance.repository import ShiftRepository
from .attendance.service import ClockService
from .core.constants import DEFAULT_BUSINESS_TIMEZONE
from .core.exceptions import ValidationError
from .corrections.service import ManualCorrectionService
from .database.connection import DatabaseConnection, DBConfig
from .ledger.memory_store import InMemoryLedgerStore
from .ledger.mysql_store import MySQLLedgerStore
from .ledger.store import LedgerStore
from .payroll.rates import RateStore
from .payroll.service import PayrollAggregator, PayrollReportService


@dataclass(frozen=True)
class Container:
    store: LedgerStore
    conn: Optional[DatabaseConnection]

    shifts_repo: ShiftRepository
    rate_store: RateStore

    clock_service: ClockService
    query_service: DayQueryService
    correction_service: ManualCorrectionService
    payroll_aggregator: PayrollAggregator
    payroll_report_service: PayrollReportService


def build_store(*, backend: str, db_config: Optional[dict] = None) -> tuple[LedgerStore, Optional[DatabaseConnection]]:
    backend = (backend or "memory").lower()
    if backend == "memory":
        return InMemoryLedgerStore(), None
    if backend == "mysql":
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config or {}))
        return MySQLLedgerStore(conn), conn
    raise ValidationError(f"Unknown store backend: {backend}")


def build_container(
    *,
    backend: str = "memory",
    db_config: Optional[dict] = None,
    timezone: str = DEFAULT_BUSINESS_TIMEZONE,
    store: Optional[LedgerStore] = None,
) -> Container:
    conn: Optional[DatabaseConnection] = None
    if store is None:
        store, conn = build_store(backend=backend, db_config=db_config)

    shifts_repo = ShiftRepository(store)
    rate_store = RateStore(store)

    clock_service = ClockService(shifts_repo, timezone=timezone)
    query_service = DayQueryService(shifts_repo)
    correction_service = ManualCorrectionService(shifts_repo, rate_store, timezone=timezone)
    payroll_aggregator = PayrollAggregator(rate_store, timezone=timezone)
    payroll_report_service = PayrollReportService(query_service, payroll_aggregator)

    return Container(
        store=store,
        conn=conn,
        shifts_repo=shifts_repo,
        rate_store=rate_store,
        clock_service=clock_service,
        query_service=query_service,
        correction_service=correction_service,
        payroll_aggregator=payroll_aggregator,
        payroll_report_service=payroll_report_service,
    )
