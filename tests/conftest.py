import datetime

import pytest

from expense_ledger.storage import MemoryStore
from expense_ledger.tracker import ExpenseTracker

TODAY = datetime.date(2024, 3, 15)


class FlakyStore(MemoryStore):
    """MemoryStore whose writes can be switched to fail."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail = False

    def set(self, key, value):
        if self.fail:
            raise OSError("disk full")
        super().set(key, value)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def tracker(store):
    return ExpenseTracker(store, today=lambda: TODAY)
