from __future__ import annotations

import uuid
from typing import Callable, Optional

from ..common.datetime_utils import day_key, get_zone, now_ms
from ..common.log import get_logger
from ..common.validators import require_non_empty, require_timestamp_ms
from ..core.constants import DEFAULT_BUSINESS_TIMEZONE, ENTRY_ID_PREFIX
from ..core.enums import LedgerErrorCode, Role
from ..core.exceptions import ValidationError
from ..ledger import keys
from ..ledger.store import VersionedValue
from .model import ClockInResult, ClockOutResult, EditStamp, ShiftEntry
from .repository import ShiftRepository

logger = get_logger(__name__)


def new_entry_id() -> str:
    return f"{ENTRY_ID_PREFIX}_{uuid.uuid4()}"


def coerce_role(value, field_name: str = "role") -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be one of: staff, manager, owner")


class ClockService:
    """Clock-in / clock-out state transitions.

    Each transition is a single conditional commit keyed on the staff
    member's open pointer, so concurrent requests for the same employee
    resolve inside the store: the loser re-reads and reports what won.
    The service never retries on its own.
    """

    def __init__(
        self,
        entries: ShiftRepository,
        *,
        timezone: str = DEFAULT_BUSINESS_TIMEZONE,
        id_factory: Callable[[], str] = new_entry_id,
    ):
        self._entries = entries
        self._timezone = get_zone(timezone).key
        self._id_factory = id_factory

    @property
    def timezone(self) -> str:
        return self._timezone

    def clock_in(
        self,
        restaurant_id: str,
        staff_id: str,
        acting_user_id: str,
        source: Role | str = Role.STAFF,
        *,
        now: Optional[int] = None,
    ) -> ClockInResult:
        restaurant_id = require_non_empty(restaurant_id, "restaurant_id")
        staff_id = require_non_empty(staff_id, "staff_id")
        acting_user_id = require_non_empty(acting_user_id, "acting_user_id")
        source = coerce_role(source, "source")
        ts = require_timestamp_ms(now if now is not None else now_ms(), "now")

        pointer = self._entries.read_open_pointer(staff_id)
        if pointer.value:
            logger.info("clock-in rejected, shift already open", extra={"staff_id": staff_id, "entry_id": pointer.value})
            return ClockInResult(ok=False, error=LedgerErrorCode.ALREADY_OPEN, open_entry_id=str(pointer.value))

        entry = ShiftEntry(
            id=self._id_factory(),
            restaurant_id=restaurant_id,
            staff_id=staff_id,
            acting_user_id=acting_user_id,
            clock_in_at=ts,
            source=source,
            created_at=ts,
            updated_at=ts,
        )

        op = self._entries.atomic().check(pointer.key, None).check(keys.entry_key(entry.id), None)
        self._entries.stage_entry(op, entry, day=day_key(ts, self._timezone))
        self._entries.stage_open_pointer(op, staff_id, entry.id)

        if not op.commit().ok:
            again = self._entries.read_open_pointer(staff_id)
            winner = str(again.value) if again.value else None
            logger.info("clock-in lost a race", extra={"staff_id": staff_id, "entry_id": winner})
            return ClockInResult(ok=False, error=LedgerErrorCode.ALREADY_OPEN, open_entry_id=winner)

        logger.info("clocked in", extra={"staff_id": staff_id, "entry_id": entry.id, "restaurant_id": restaurant_id})
        return ClockInResult(ok=True, entry=entry)

    def clock_out(
        self,
        staff_id: str,
        acting_user_id: str,
        role_for_audit: Role | str = Role.STAFF,
        *,
        now: Optional[int] = None,
    ) -> ClockOutResult:
        staff_id = require_non_empty(staff_id, "staff_id")
        acting_user_id = require_non_empty(acting_user_id, "acting_user_id")
        role = coerce_role(role_for_audit, "role_for_audit")
        ts = require_timestamp_ms(now if now is not None else now_ms(), "now")

        pointer = self._entries.read_open_pointer(staff_id)
        if not pointer.value:
            # A replayed clock-out finds the shift it already closed, same business day only.
            last = self._entries.get_last_closed(staff_id)
            if last is not None and day_key(last.clock_out_at, self._timezone) == day_key(ts, self._timezone):
                return ClockOutResult(ok=False, error=LedgerErrorCode.ALREADY_CLOSED, entry=last)
            return ClockOutResult(ok=False, error=LedgerErrorCode.NO_OPEN)

        entry_id = str(pointer.value)
        _, entry = self._entries.read_entry(entry_id)
        if entry is None:
            self._heal_pointer(pointer, staff_id, reason="missing entry")
            return ClockOutResult(ok=False, error=LedgerErrorCode.NOT_FOUND)

        if not entry.is_open:
            self._heal_pointer(pointer, staff_id, reason="entry already closed")
            return ClockOutResult(ok=False, error=LedgerErrorCode.ALREADY_CLOSED, entry=entry)

        updated = entry.close(at=ts, stamp=EditStamp(user_id=acting_user_id, role=role.value, at=ts))

        op = self._entries.atomic().check_read(pointer).set(keys.entry_key(entry_id), updated.to_record())
        self._entries.stage_close(op, staff_id, entry_id)

        if not op.commit().ok:
            fresh = self._entries.get_entry(entry_id)
            if fresh is not None and not fresh.is_open:
                logger.info("clock-out raced, entry already closed", extra={"staff_id": staff_id, "entry_id": entry_id})
                return ClockOutResult(ok=True, entry=fresh)
            return ClockOutResult(ok=False, error=LedgerErrorCode.NO_OPEN)

        logger.info("clocked out", extra={"staff_id": staff_id, "entry_id": entry_id})
        return ClockOutResult(ok=True, entry=updated)

    def get_open_entry_id(self, staff_id: str) -> Optional[str]:
        pointer = self._entries.read_open_pointer(require_non_empty(staff_id, "staff_id"))
        return str(pointer.value) if pointer.value else None

    def get_open_entry(self, staff_id: str) -> Optional[ShiftEntry]:
        entry_id = self.get_open_entry_id(staff_id)
        if not entry_id:
            return None
        entry = self._entries.get_entry(entry_id)
        if entry is None or not entry.is_open:
            return None
        return entry

    def _heal_pointer(self, pointer: VersionedValue, staff_id: str, *, reason: str) -> None:
        # Conditioned on the stale read so a pointer set by a newer clock-in survives.
        op = self._entries.atomic().check_read(pointer)
        self._entries.stage_clear_open_pointer(op, staff_id)
        healed = op.commit().ok
        logger.warning(
            "stale open pointer",
            extra={"staff_id": staff_id, "entry_id": pointer.value, "reason": reason, "healed": healed},
        )
