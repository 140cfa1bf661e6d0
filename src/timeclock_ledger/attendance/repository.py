from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..ledger import keys
from ..ledger.store import AtomicOperation, KvKey, LedgerStore, VersionedValue
from .model import ShiftEntry


class ShiftRepository:
    """Reads and staged writes of shift entries, indices and open pointers.

    Nothing here commits on its own: writers stage keys onto an
    ``AtomicOperation`` and commit it once.
    """

    def __init__(self, store: LedgerStore):
        self._store = store

    def atomic(self) -> AtomicOperation:
        return self._store.atomic()

    # ---- reads ----

    def read_open_pointer(self, staff_id: str) -> VersionedValue:
        return self._store.get(keys.open_pointer_key(staff_id))

    def read_entry(self, entry_id: str) -> tuple[VersionedValue, Optional[ShiftEntry]]:
        res = self._store.get(keys.entry_key(entry_id))
        if res.value is None:
            return res, None
        return res, ShiftEntry.from_record(res.value)

    def get_entry(self, entry_id: str) -> Optional[ShiftEntry]:
        return self.read_entry(entry_id)[1]

    def _ids_under(self, prefix: KvKey) -> list[str]:
        return [row.key[-1] for row in self._store.list_prefix(prefix)]

    def _load(self, entry_ids: Iterable[str]) -> list[ShiftEntry]:
        out: list[ShiftEntry] = []
        for entry_id in entry_ids:
            e = self.get_entry(entry_id)
            if e:
                out.append(e)
        out.sort(key=lambda e: (e.clock_in_at, e.id))
        return out

    def list_by_restaurant_day(self, restaurant_id: str, day: str) -> Sequence[ShiftEntry]:
        return self._load(self._ids_under(keys.restaurant_day_prefix(restaurant_id, day)))

    def list_by_staff_day(self, staff_id: str, day: str) -> Sequence[ShiftEntry]:
        return self._load(self._ids_under(keys.staff_day_prefix(staff_id, day)))

    # ---- staged writes ----

    @staticmethod
    def stage_entry(op: AtomicOperation, entry: ShiftEntry, *, day: str) -> AtomicOperation:
        """Write the entry together with both day-index memberships."""
        return (
            op.set(keys.entry_key(entry.id), entry.to_record())
            .set(keys.restaurant_day_key(entry.restaurant_id, day, entry.id), True)
            .set(keys.staff_day_key(entry.staff_id, day, entry.id), True)
        )

    @staticmethod
    def stage_open_pointer(op: AtomicOperation, staff_id: str, entry_id: str) -> AtomicOperation:
        """Point at a newly open shift; the previous "last closed" marker no longer applies."""
        return op.set(keys.open_pointer_key(staff_id), entry_id).delete(keys.last_closed_key(staff_id))

    @staticmethod
    def stage_close(op: AtomicOperation, staff_id: str, entry_id: str) -> AtomicOperation:
        """Drop the open pointer and remember ``entry_id`` as the last closed shift."""
        return op.delete(keys.open_pointer_key(staff_id)).set(keys.last_closed_key(staff_id), entry_id)

    @staticmethod
    def stage_clear_open_pointer(op: AtomicOperation, staff_id: str) -> AtomicOperation:
        return op.delete(keys.open_pointer_key(staff_id))

    def get_last_closed(self, staff_id: str) -> Optional[ShiftEntry]:
        marker = self._store.get(keys.last_closed_key(staff_id))
        if not marker.value:
            return None
        entry = self.get_entry(str(marker.value))
        if entry is None or entry.is_open:
            return None
        return entry
