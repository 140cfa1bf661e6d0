from __future__ import annotations

import json
import uuid
from typing import Any, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..common.log import get_logger
from ..core.exceptions import StoreUnavailableError
from ..database.bootstrap import LEDGER_TABLE
from ..database.connection import DatabaseConnection
from ..database.mysql_base import fetchall, fetchone, transaction
from .store import KEY_SEPARATOR, AtomicOperation, Check, CommitResult, KvKey, Mutation, VersionedValue, validate_key

logger = get_logger(__name__)

# Lost races surface as deadlocks (two transactions holding gap locks on the
# same missing key) or duplicate inserts; both mean "a check failed".
_CONFLICT_ERRNOS = frozenset({errorcode.ER_LOCK_DEADLOCK, errorcode.ER_DUP_ENTRY})


def encode_key(key: KvKey) -> bytes:
    return KEY_SEPARATOR.join(key).encode("utf-8")


def decode_key(raw) -> KvKey:
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8")
    return tuple(str(raw).split(KEY_SEPARATOR))


def prefix_bounds(prefix: KvKey) -> tuple[bytes, bytes]:
    """Half-open binary range holding every key strictly under ``prefix``."""
    base = encode_key(prefix)
    return base + b"\x1f", base + b"\x20"


def _load_value(raw) -> Any:
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8")
    return json.loads(raw)


def _dump_value(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class _CheckFailed(Exception):
    pass


class MySQLLedgerStore:
    """Ledger store backed by a single InnoDB key/value table."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, key: KvKey) -> VersionedValue:
        key = validate_key(key)
        try:
            with transaction(self._conn_factory) as cur:
                cur.execute(
                    f"SELECT v, versionstamp FROM {LEDGER_TABLE} WHERE k=%s",
                    (encode_key(key),),
                )
                r = fetchone(cur)
        except mysql.connector.Error as exc:
            raise StoreUnavailableError(f"ledger read failed: {exc}") from exc

        if not r:
            return VersionedValue(key=key, value=None, versionstamp=None)
        return VersionedValue(key=key, value=_load_value(r["v"]), versionstamp=str(r["versionstamp"]))

    def list_prefix(self, prefix: KvKey) -> Sequence[VersionedValue]:
        lower, upper = prefix_bounds(validate_key(prefix))
        try:
            with transaction(self._conn_factory) as cur:
                cur.execute(
                    f"""
                    SELECT k, v, versionstamp
                    FROM {LEDGER_TABLE}
                    WHERE k >= %s AND k < %s
                    ORDER BY k ASC
                    """,
                    (lower, upper),
                )
                rows = fetchall(cur)
        except mysql.connector.Error as exc:
            raise StoreUnavailableError(f"ledger scan failed: {exc}") from exc

        return [
            VersionedValue(key=decode_key(r["k"]), value=_load_value(r["v"]), versionstamp=str(r["versionstamp"]))
            for r in rows
        ]

    def atomic(self) -> AtomicOperation:
        return AtomicOperation(store=self)

    def commit_atomic(self, checks: Sequence[Check], mutations: Sequence[Mutation]) -> CommitResult:
        stamp = uuid.uuid4().hex
        try:
            with transaction(self._conn_factory) as cur:
                for c in checks:
                    cur.execute(
                        f"SELECT versionstamp FROM {LEDGER_TABLE} WHERE k=%s FOR UPDATE",
                        (encode_key(c.key),),
                    )
                    row = fetchone(cur)
                    current = str(row["versionstamp"]) if row else None
                    if current != c.versionstamp:
                        raise _CheckFailed(c.key)

                for m in mutations:
                    if m.delete:
                        cur.execute(f"DELETE FROM {LEDGER_TABLE} WHERE k=%s", (encode_key(m.key),))
                    else:
                        cur.execute(
                            f"""
                            INSERT INTO {LEDGER_TABLE}(k, v, versionstamp)
                            VALUES(%s,%s,%s)
                            ON DUPLICATE KEY UPDATE v=VALUES(v), versionstamp=VALUES(versionstamp)
                            """,
                            (encode_key(m.key), _dump_value(m.value), stamp),
                        )
        except _CheckFailed as failed:
            logger.debug("commit check failed", extra={"key": list(failed.args[0])})
            return CommitResult(ok=False)
        except mysql.connector.Error as exc:
            if exc.errno in _CONFLICT_ERRNOS:
                logger.debug("commit lost a race", extra={"errno": exc.errno})
                return CommitResult(ok=False)
            raise StoreUnavailableError(f"ledger commit failed: {exc}") from exc

        return CommitResult(ok=True, versionstamp=stamp)
