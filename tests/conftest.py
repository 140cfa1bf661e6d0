from __future__ import annotations

import pytest

from timeclock_ledger.common.datetime_utils import local_ms
from timeclock_ledger.container import build_container
from timeclock_ledger.ledger.memory_store import InMemoryLedgerStore

TZ = "Asia/Jerusalem"


def at(day: str, hour: int, minute: int = 0) -> int:
    """Epoch ms of a business-local wall-clock time."""
    return local_ms(day, hour, minute, TZ)


class HookedStore(InMemoryLedgerStore):
    """In-memory store that runs a callback right before the next commit.

    Lets a test interleave a competing request between an operation's
    read and its conditional commit.
    """

    def __init__(self):
        super().__init__()
        self.before_next_commit = None

    def commit_atomic(self, checks, mutations):
        hook, self.before_next_commit = self.before_next_commit, None
        if hook is not None:
            hook()
        return super().commit_atomic(checks, mutations)


@pytest.fixture
def store():
    return HookedStore()


@pytest.fixture
def container(store):
    return build_container(store=store, timezone=TZ)
