from decimal import Decimal

import pytest

from conftest import at
from timeclock_ledger.attendance.model import ShiftEntry
from timeclock_ledger.core.enums import Role
from timeclock_ledger.core.exceptions import ValidationError
from timeclock_ledger.payroll.model import StaffRef


def _row(entry_id, staff_id, clock_in_at, clock_out_at=None, restaurant_id="r1"):
    return ShiftEntry(
        id=entry_id,
        restaurant_id=restaurant_id,
        staff_id=staff_id,
        acting_user_id=staff_id,
        clock_in_at=clock_in_at,
        clock_out_at=clock_out_at,
        source=Role.STAFF,
        created_at=clock_in_at,
        updated_at=clock_in_at,
    )


def test_open_entry_is_incomplete_and_counts_zero(container):
    rows = [
        _row("time_a", "s1", at("2025-03-03", 9), at("2025-03-03", 11)),
        _row("time_b", "s1", at("2025-03-04", 9)),
    ]

    report = container.payroll_aggregator.compute_payroll_for_month("r1", "2025-03", [StaffRef("s1")], rows)

    assert [e.id for e in report.incomplete_entries] == ["time_b"]
    assert report.per_staff[0].minutes == 120
    assert report.per_staff[0].incomplete_count == 1
    assert report.totals.minutes == 120
    assert report.totals.incomplete_count == 1


def test_gross_pay_uses_the_hourly_rate(container):
    container.rate_store.set_hourly_rate("s1", 50)
    rows = [_row("time_a", "s1", at("2025-03-03", 8), at("2025-03-03", 18))]

    report = container.payroll_aggregator.compute_payroll_for_month("r1", "2025-03", [StaffRef("s1")], rows)

    row = report.per_staff[0]
    assert row.minutes == 600
    assert row.hours == Decimal("10.00")
    assert row.hourly_rate == Decimal("50")
    assert row.gross_pay == Decimal("500.00")
    assert report.totals.gross_pay == Decimal("500.00")


def test_every_listed_staff_member_gets_a_row(container):
    staff = [StaffRef("s2", "Dana", "Levi"), StaffRef("s1", "Avi"), StaffRef("s3")]
    rows = [
        _row("time_a", "s1", at("2025-03-03", 9), at("2025-03-03", 10)),
        _row("time_b", "s9", at("2025-03-05", 9), at("2025-03-05", 9, 30)),
    ]

    report = container.payroll_aggregator.compute_payroll_for_month("r1", "2025-03", staff, rows)

    assert [(r.staff_id, r.staff_name, r.minutes) for r in report.per_staff] == [
        ("s2", "Dana Levi", 0),
        ("s1", "Avi", 60),
        ("s3", "s3", 0),
        ("s9", "s9", 30),
    ]
    assert report.totals.staff_count == 4
    assert report.totals.minutes == 90
    assert all(r.hourly_rate == Decimal("0") and r.gross_pay == Decimal("0.00") for r in report.per_staff)


def test_rows_of_other_restaurants_and_months_are_ignored(container):
    rows = [
        _row("time_a", "s1", at("2025-03-03", 9), at("2025-03-03", 10)),
        _row("time_b", "s1", at("2025-03-03", 11), at("2025-03-03", 12), restaurant_id="r2"),
        _row("time_c", "s1", at("2025-04-01", 0, 30), at("2025-04-01", 2)),
        _row("time_d", "s1", at("2025-02-28", 9)),
    ]

    report = container.payroll_aggregator.compute_payroll_for_month("r1", "2025-03", [], rows)

    assert report.totals.minutes == 60
    assert report.incomplete_entries == []


def test_inverted_entry_is_reported_incomplete(container):
    rows = [_row("time_a", "s1", at("2025-03-03", 12), at("2025-03-03", 9))]

    report = container.payroll_aggregator.compute_payroll_for_month("r1", "2025-03", [], rows)

    assert report.totals.minutes == 0
    assert [e.id for e in report.incomplete_entries] == ["time_a"]


def test_malformed_month_is_rejected(container):
    with pytest.raises(ValidationError):
        container.payroll_aggregator.compute_payroll_for_month("r1", "2025-13", [], [])


def test_month_report_reads_the_ledger(container):
    clock = container.clock_service
    clock.clock_in("r1", "s1", "s1", now=at("2025-03-10", 9, 0))
    clock.clock_out("s1", "s1", now=at("2025-03-10", 17, 30))
    clock.clock_in("r1", "s1", "s1", now=at("2025-03-11", 9, 0))
    clock.clock_in("r2", "s2", "s2", now=at("2025-03-11", 9, 0))
    container.rate_store.set_hourly_rate("s1", 40)

    report = container.payroll_report_service.build_month_report("r1", "2025-03", [StaffRef("s1", "Avi", "Cohen")])

    assert report.restaurant_id == "r1"
    assert [(r.staff_name, r.minutes, r.gross_pay) for r in report.per_staff] == [("Avi Cohen", 510, Decimal("340.00"))]
    assert len(report.incomplete_entries) == 1
    assert report.incomplete_entries[0].clock_in_at == at("2025-03-11", 9, 0)
