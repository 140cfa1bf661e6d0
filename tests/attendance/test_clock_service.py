from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from conftest import TZ, at
from timeclock_ledger.attendance.model import EditStamp, ShiftEntry
from timeclock_ledger.core.enums import LedgerErrorCode, Role
from timeclock_ledger.core.exceptions import StoreUnavailableError, ValidationError
from timeclock_ledger.ledger import keys
from timeclock_ledger.ledger.memory_store import InMemoryLedgerStore
from timeclock_ledger.container import build_container
from timeclock_ledger.payroll.calculator.standard_calculator import StandardPayrollCalculator

DAY = "2025-03-10"


def open_entries(container, staff_id: str, day: str = DAY) -> list[ShiftEntry]:
    return [e for e in container.query_service.list_by_staff_day(staff_id, day) if e.is_open]


def test_full_shift_records_both_timestamps_and_minutes(container):
    svc = container.clock_service

    res_in = svc.clock_in("r1", "s1", "u1", Role.STAFF, now=at(DAY, 9, 0))
    res_out = svc.clock_out("s1", "u1", Role.STAFF, now=at(DAY, 17, 30))

    assert res_in.ok and res_out.ok
    entry = res_out.entry
    assert entry.id == res_in.entry.id
    assert entry.clock_in_at == at(DAY, 9, 0)
    assert entry.clock_out_at == at(DAY, 17, 30)
    assert entry.edited_by.user_id == "u1"
    assert entry.edited_by.role == "staff"
    assert StandardPayrollCalculator().worked_minutes(entry) == 510


def test_second_clock_in_reports_the_open_entry(container):
    svc = container.clock_service

    first = svc.clock_in("r1", "s1", "u1", now=at(DAY, 9, 0))
    second = svc.clock_in("r1", "s1", "u1", now=at(DAY, 9, 5))

    assert first.ok
    assert not second.ok
    assert second.error == LedgerErrorCode.ALREADY_OPEN
    assert second.open_entry_id == first.entry.id
    assert len(open_entries(container, "s1")) == 1


def test_clock_in_after_clock_out_succeeds(container):
    svc = container.clock_service

    svc.clock_in("r1", "s1", "u1", now=at(DAY, 9, 0))
    svc.clock_out("s1", "u1", now=at(DAY, 12, 0))
    again = svc.clock_in("r1", "s1", "u1", now=at(DAY, 13, 0))

    assert again.ok
    assert svc.get_open_entry("s1") == again.entry


def test_clock_out_twice_returns_already_closed_with_same_entry(container):
    svc = container.clock_service
    svc.clock_in("r1", "s1", "u1", now=at(DAY, 9, 0))

    first = svc.clock_out("s1", "u1", now=at(DAY, 17, 0))
    second = svc.clock_out("s1", "u1", now=at(DAY, 17, 1))

    assert first.ok
    assert not second.ok
    assert second.error == LedgerErrorCode.ALREADY_CLOSED
    assert second.entry == first.entry


def test_clock_out_on_a_later_day_is_no_open(container):
    svc = container.clock_service
    svc.clock_in("r1", "s1", "u1", now=at(DAY, 9, 0))
    svc.clock_out("s1", "u1", now=at(DAY, 17, 0))

    later = svc.clock_out("s1", "u1", now=at("2025-03-20", 17, 0))

    assert not later.ok
    assert later.error == LedgerErrorCode.NO_OPEN
    assert later.entry is None


def test_clock_out_without_any_shift_is_no_open(container):
    res = container.clock_service.clock_out("s1", "u1", now=at(DAY, 17, 0))
    assert not res.ok
    assert res.error == LedgerErrorCode.NO_OPEN


def test_entry_is_listed_under_business_day(container):
    # 00:30 in Jerusalem is still the previous day in UTC.
    res = container.clock_service.clock_in("r1", "s1", "u1", now=at(DAY, 0, 30))
    container.clock_service.clock_out("s1", "u1", now=at(DAY, 8, 0))

    by_restaurant = container.query_service.list_by_restaurant_day("r1", DAY)
    by_staff = container.query_service.list_by_staff_day("s1", DAY)

    assert [e.id for e in by_restaurant] == [res.entry.id]
    assert [e.id for e in by_staff] == [res.entry.id]
    assert by_staff[0].clock_out_at == at(DAY, 8, 0)
    assert container.query_service.list_by_restaurant_day("r1", "2025-03-09") == []


def test_concurrent_clock_in_loser_sees_winner(container, store):
    svc = container.clock_service
    winner = {}

    def other_device():
        winner["res"] = svc.clock_in("r1", "s1", "u2", Role.MANAGER, now=at(DAY, 9, 0))

    store.before_next_commit = other_device
    loser = svc.clock_in("r1", "s1", "u1", Role.STAFF, now=at(DAY, 9, 0))

    assert winner["res"].ok
    assert not loser.ok
    assert loser.error == LedgerErrorCode.ALREADY_OPEN
    assert loser.open_entry_id == winner["res"].entry.id
    assert len(open_entries(container, "s1")) == 1
    assert len(container.query_service.list_by_restaurant_day("r1", DAY)) == 1


def test_threaded_clock_ins_produce_exactly_one_open_shift():
    container = build_container(store=InMemoryLedgerStore(), timezone=TZ)
    barrier = Barrier(8)

    def attempt(i: int):
        barrier.wait()
        return container.clock_service.clock_in("r1", "s1", f"device-{i}", now=at(DAY, 9, 0))

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(8)))

    winners = [r for r in results if r.ok]
    assert len(winners) == 1
    assert all(r.open_entry_id == winners[0].entry.id for r in results if not r.ok)
    assert len(open_entries(container, "s1")) == 1


def test_concurrent_clock_out_is_idempotent(container, store):
    svc = container.clock_service
    svc.clock_in("r1", "s1", "u1", now=at(DAY, 9, 0))
    other = {}

    def other_device():
        other["res"] = svc.clock_out("s1", "u2", Role.MANAGER, now=at(DAY, 17, 0))

    store.before_next_commit = other_device
    res = svc.clock_out("s1", "u1", Role.STAFF, now=at(DAY, 17, 5))

    assert other["res"].ok
    assert res.ok
    assert res.entry == other["res"].entry
    assert res.entry.clock_out_at == at(DAY, 17, 0)


def test_stale_pointer_to_missing_entry_is_healed(container, store):
    store.atomic().set(keys.open_pointer_key("s1"), "time_gone").commit()

    res = container.clock_service.clock_out("s1", "u1", now=at(DAY, 17, 0))

    assert not res.ok
    assert res.error == LedgerErrorCode.NOT_FOUND
    assert store.get(keys.open_pointer_key("s1")).value is None
    assert container.clock_service.clock_in("r1", "s1", "u1", now=at(DAY, 18, 0)).ok


def test_stale_pointer_to_closed_entry_is_healed(container, store):
    svc = container.clock_service
    entry = svc.clock_in("r1", "s1", "u1", now=at(DAY, 9, 0)).entry
    closed = entry.close(at=at(DAY, 12, 0), stamp=EditStamp(user_id="admin", role="owner", at=at(DAY, 12, 0)))
    store.atomic().set(keys.entry_key(entry.id), closed.to_record()).commit()

    assert svc.get_open_entry("s1") is None

    res = svc.clock_out("s1", "u1", now=at(DAY, 17, 0))

    assert res.error == LedgerErrorCode.ALREADY_CLOSED
    assert res.entry.clock_out_at == at(DAY, 12, 0)
    assert svc.get_open_entry_id("s1") is None


def test_store_failure_propagates_and_writes_nothing(container, store):
    def unavailable():
        raise StoreUnavailableError("commit endpoint down")

    store.before_next_commit = unavailable
    with pytest.raises(StoreUnavailableError):
        container.clock_service.clock_in("r1", "s1", "u1", now=at(DAY, 9, 0))

    assert len(store) == 0


@pytest.mark.parametrize(
    "args",
    [
        ("", "s1", "u1"),
        ("r1", "", "u1"),
        ("r1", "  ", "u1"),
        ("r1", "s1", ""),
    ],
)
def test_missing_ids_are_rejected_before_store_access(args):
    class Untouchable:
        def __getattr__(self, name):
            raise AssertionError(f"store accessed: {name}")

    container = build_container(store=Untouchable(), timezone=TZ)
    with pytest.raises(ValidationError):
        container.clock_service.clock_in(*args, now=at(DAY, 9, 0))


def test_unknown_source_is_rejected(container):
    with pytest.raises(ValidationError):
        container.clock_service.clock_in("r1", "s1", "u1", "robot", now=at(DAY, 9, 0))
