from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..common.log import get_logger
from ..common.validators import require_hourly_rate, require_non_empty
from ..core.exceptions import StoreError
from ..ledger import keys
from ..ledger.store import LedgerStore

logger = get_logger(__name__)


class RateStore:
    """Per-employee hourly pay rate, stored as a decimal string."""

    def __init__(self, store: LedgerStore):
        self._store = store

    def get_hourly_rate(self, staff_id: str) -> Optional[Decimal]:
        res = self._store.get(keys.hourly_rate_key(require_non_empty(staff_id, "staff_id")))
        if res.value is None:
            return None
        return Decimal(str(res.value))

    def set_hourly_rate(self, staff_id: str, hourly_rate) -> Decimal:
        staff_id = require_non_empty(staff_id, "staff_id")
        rate = require_hourly_rate(hourly_rate)
        if not self._store.atomic().set(keys.hourly_rate_key(staff_id), str(rate)).commit().ok:
            logger.warning("hourly rate write lost", extra={"staff_id": staff_id})
            raise StoreError(f"hourly rate for {staff_id} was not saved")
        logger.info("hourly rate set", extra={"staff_id": staff_id, "hourly_rate": str(rate)})
        return rate
