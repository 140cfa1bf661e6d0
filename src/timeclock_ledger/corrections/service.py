from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional, Sequence

from ..attendance.model import EditStamp, ShiftEntry
from ..attendance.repository import ShiftRepository
from ..attendance.service import coerce_role, new_entry_id
from ..common.datetime_utils import day_key, get_zone, now_ms
from ..common.log import get_logger
from ..common.validators import (
    clean_note,
    require_day_key,
    require_hourly_rate,
    require_non_empty,
    require_timestamp_ms,
)
from ..core.constants import DEFAULT_BUSINESS_TIMEZONE
from ..core.enums import LedgerErrorCode
from ..core.exceptions import ValidationError
from ..ledger import keys
from ..payroll.rates import RateStore
from .model import KEEP, Actor, ManualEntryResult

logger = get_logger(__name__)


def _pick_day_entry(candidates: Sequence[ShiftEntry]) -> Optional[ShiftEntry]:
    # The open shift of the day is the one a manager is fixing; otherwise the latest.
    for e in candidates:
        if e.is_open:
            return e
    return candidates[-1] if candidates else None


class ManualCorrectionService:
    """Administrator edits of a staff member's shift on a given day.

    The edit, its day-index membership and any open-pointer move are one
    conditional commit, so corrections keep the single-open-shift rule the
    clock operations keep. Reopening a closed entry (``clock_out_at=None``)
    is allowed when no other shift is open.
    """

    def __init__(
        self,
        entries: ShiftRepository,
        rates: RateStore,
        *,
        timezone: str = DEFAULT_BUSINESS_TIMEZONE,
        id_factory: Callable[[], str] = new_entry_id,
    ):
        self._entries = entries
        self._rates = rates
        self._timezone = get_zone(timezone).key
        self._id_factory = id_factory

    def upsert_manual_entry(
        self,
        restaurant_id: str,
        staff_id: str,
        day: str,
        *,
        actor: Actor,
        clock_in_at=KEEP,
        clock_out_at=KEEP,
        note=KEEP,
        hourly_rate=None,
        now: Optional[int] = None,
    ) -> ManualEntryResult:
        restaurant_id = require_non_empty(restaurant_id, "restaurant_id")
        staff_id = require_non_empty(staff_id, "staff_id")
        day = require_day_key(day)
        actor = Actor(user_id=require_non_empty(actor.user_id, "actor.user_id"), role=coerce_role(actor.role, "actor.role"))
        ts = require_timestamp_ms(now if now is not None else now_ms(), "now")

        if clock_in_at is None:
            raise ValidationError("clock_in_at cannot be cleared")
        if clock_in_at is not KEEP:
            clock_in_at = require_timestamp_ms(clock_in_at, "clock_in_at")
            if day_key(clock_in_at, self._timezone) != day:
                raise ValidationError(f"clock_in_at must fall on {day}")
        if clock_out_at is not KEEP and clock_out_at is not None:
            clock_out_at = require_timestamp_ms(clock_out_at, "clock_out_at")
            if clock_in_at is not KEEP and clock_out_at < clock_in_at:
                raise ValidationError("clock_out_at cannot be before clock_in_at")
        rate = require_hourly_rate(hourly_rate) if hourly_rate is not None else None

        candidates = [
            e
            for e in self._entries.list_by_staff_day(staff_id, day)
            if e.restaurant_id == restaurant_id and day_key(e.clock_in_at, self._timezone) == day
        ]
        picked = _pick_day_entry(candidates)
        entry_read, existing = self._entries.read_entry(picked.id) if picked else (None, None)

        next_in = clock_in_at if clock_in_at is not KEEP else (existing.clock_in_at if existing else None)
        if next_in is None:
            raise ValidationError("clock_in_at is required for a new entry")

        next_out = clock_out_at if clock_out_at is not KEEP else (existing.clock_out_at if existing else None)
        if next_out is not None and next_out < next_in:
            raise ValidationError("clock_out_at cannot be before clock_in_at")

        next_note = clean_note(note) if note is not KEEP else (existing.note if existing else None)
        stamp = EditStamp(user_id=actor.user_id, role=actor.role.value, at=ts)

        if existing:
            row = replace(
                existing,
                clock_in_at=next_in,
                clock_out_at=next_out,
                note=next_note,
                updated_at=ts,
                edited_by=stamp,
            )
        else:
            row = ShiftEntry(
                id=self._id_factory(),
                restaurant_id=restaurant_id,
                staff_id=staff_id,
                acting_user_id=actor.user_id,
                clock_in_at=next_in,
                clock_out_at=next_out,
                source=actor.role,
                note=next_note,
                created_at=ts,
                updated_at=ts,
                edited_by=stamp,
            )

        pointer = self._entries.read_open_pointer(staff_id)
        pointer_id = str(pointer.value) if pointer.value else None

        if row.is_open and pointer_id and pointer_id != row.id:
            other = self._entries.get_entry(pointer_id)
            if other is not None and other.is_open:
                logger.info(
                    "manual entry rejected, another shift is open",
                    extra={"staff_id": staff_id, "open_entry_id": other.id, "day": day},
                )
                return ManualEntryResult(ok=False, error=LedgerErrorCode.CONFLICT_OPEN, open=other)

        op = self._entries.atomic()
        if existing is not None:
            op.check_read(entry_read)
        else:
            op.check(keys.entry_key(row.id), None)
        self._entries.stage_entry(op, row, day=day)

        if row.is_open:
            op.check_read(pointer)
            if pointer_id != row.id:
                self._entries.stage_open_pointer(op, staff_id, row.id)
        elif pointer_id == row.id:
            op.check_read(pointer)
            self._entries.stage_close(op, staff_id, row.id)

        if not op.commit().ok:
            return self._lost_race(staff_id, row)

        logger.info(
            "manual entry saved",
            extra={
                "staff_id": staff_id,
                "entry_id": row.id,
                "created": existing is None,
                "open": row.is_open,
                "actor": actor.user_id,
            },
        )

        if rate is not None:
            self._rates.set_hourly_rate(staff_id, rate)

        return ManualEntryResult(ok=True, row=row)

    def _lost_race(self, staff_id: str, row: ShiftEntry) -> ManualEntryResult:
        if row.is_open:
            current = self._entries.read_open_pointer(staff_id)
            if current.value and str(current.value) != row.id:
                other = self._entries.get_entry(str(current.value))
                if other is not None and other.is_open:
                    return ManualEntryResult(ok=False, error=LedgerErrorCode.CONFLICT_OPEN, open=other)
        logger.info("manual entry lost a race", extra={"staff_id": staff_id, "entry_id": row.id})
        return ManualEntryResult(ok=False, error=LedgerErrorCode.CONCURRENT_EDIT)
