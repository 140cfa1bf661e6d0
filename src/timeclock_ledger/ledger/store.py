from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence, Tuple

KvKey = Tuple[str, ...]

KEY_SEPARATOR = "\x1f"


@dataclass(frozen=True)
class VersionedValue:
    """A key read from the store. ``versionstamp`` is None when the key is absent."""

    key: KvKey
    value: Any
    versionstamp: Optional[str]

    @property
    def exists(self) -> bool:
        return self.versionstamp is not None


@dataclass(frozen=True)
class Check:
    key: KvKey
    versionstamp: Optional[str]


@dataclass(frozen=True)
class Mutation:
    key: KvKey
    value: Any = None
    delete: bool = False


@dataclass(frozen=True)
class CommitResult:
    ok: bool
    versionstamp: Optional[str] = None


def validate_key(key: Sequence[str]) -> KvKey:
    if not key:
        raise ValueError("Ledger keys must have at least one part")
    parts = tuple(str(p) for p in key)
    for p in parts:
        if KEY_SEPARATOR in p:
            raise ValueError(f"Key part contains a reserved character: {p!r}")
    return parts


def is_prefix(key: KvKey, prefix: KvKey) -> bool:
    return len(prefix) <= len(key) and key[: len(prefix)] == prefix


class LedgerStore(Protocol):
    def get(self, key: KvKey) -> VersionedValue:
        raise NotImplementedError

    def list_prefix(self, prefix: KvKey) -> Sequence[VersionedValue]:
        """All keys strictly under ``prefix``, ordered by key."""

        raise NotImplementedError

    def atomic(self) -> "AtomicOperation":
        raise NotImplementedError

    def commit_atomic(self, checks: Sequence[Check], mutations: Sequence[Mutation]) -> CommitResult:
        """Apply ``mutations`` only if every check still holds; all or nothing."""

        raise NotImplementedError


@dataclass
class AtomicOperation:
    """Builder for one conditional multi-key commit."""

    store: LedgerStore
    checks: list[Check] = field(default_factory=list)
    mutations: list[Mutation] = field(default_factory=list)

    def check(self, key: KvKey, versionstamp: Optional[str]) -> "AtomicOperation":
        self.checks.append(Check(key=validate_key(key), versionstamp=versionstamp))
        return self

    def check_read(self, read: VersionedValue) -> "AtomicOperation":
        return self.check(read.key, read.versionstamp)

    def set(self, key: KvKey, value: Any) -> "AtomicOperation":
        self.mutations.append(Mutation(key=validate_key(key), value=value))
        return self

    def delete(self, key: KvKey) -> "AtomicOperation":
        self.mutations.append(Mutation(key=validate_key(key), delete=True))
        return self

    def commit(self) -> CommitResult:
        return self.store.commit_atomic(tuple(self.checks), tuple(self.mutations))
