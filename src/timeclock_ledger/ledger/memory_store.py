from __future__ import annotations

import copy
import itertools
import threading
from typing import Any, Sequence

from .store import AtomicOperation, Check, CommitResult, KvKey, Mutation, VersionedValue, is_prefix, validate_key


class InMemoryLedgerStore:
    """Process-local ledger store.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store. The internal mutex only makes a single
    commit indivisible; callers coordinate through versionstamp checks.
    """

    def __init__(self):
        self._data: dict[KvKey, tuple[Any, str]] = {}
        self._mutex = threading.Lock()
        self._counter = itertools.count(1)

    def _next_versionstamp(self) -> str:
        return f"{next(self._counter):020d}"

    def get(self, key: KvKey) -> VersionedValue:
        key = validate_key(key)
        with self._mutex:
            hit = self._data.get(key)
        if hit is None:
            return VersionedValue(key=key, value=None, versionstamp=None)
        value, stamp = hit
        return VersionedValue(key=key, value=copy.deepcopy(value), versionstamp=stamp)

    def list_prefix(self, prefix: KvKey) -> Sequence[VersionedValue]:
        prefix = validate_key(prefix)
        with self._mutex:
            rows = [(k, v, s) for k, (v, s) in self._data.items() if len(k) > len(prefix) and is_prefix(k, prefix)]
        rows.sort(key=lambda r: r[0])
        return [VersionedValue(key=k, value=copy.deepcopy(v), versionstamp=s) for k, v, s in rows]

    def atomic(self) -> AtomicOperation:
        return AtomicOperation(store=self)

    def commit_atomic(self, checks: Sequence[Check], mutations: Sequence[Mutation]) -> CommitResult:
        with self._mutex:
            for c in checks:
                hit = self._data.get(c.key)
                current = hit[1] if hit else None
                if current != c.versionstamp:
                    return CommitResult(ok=False)

            stamp = self._next_versionstamp()
            for m in mutations:
                if m.delete:
                    self._data.pop(m.key, None)
                else:
                    self._data[m.key] = (copy.deepcopy(m.value), stamp)
            return CommitResult(ok=True, versionstamp=stamp)

    def __len__(self) -> int:
        return len(self._data)
