"""Ortak test fixture'ları."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from stockledger.services import InventorySession
from stockledger.store import MemoryLedgerStore, MemorySelectionStore, StoreError, StoreErrorKind

TENANT = "tenant-1"
NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Elle ilerletilen saat."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FlakyStore(MemoryLedgerStore):
    """Belirli (işlem, ilişki) çağrılarında StoreError fırlatan bellek deposu.

    fail("update", "products", after=1): ilk update başarılı, sonrakiler hata.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_on: dict[tuple[str, str], list] = {}
        self.calls: list[tuple[str, str]] = []

    def fail(self, op: str, relation: str, after: int = 0,
             kind: StoreErrorKind = StoreErrorKind.UNAVAILABLE) -> None:
        self.fail_on[(op, relation)] = [after, kind]

    def heal(self) -> None:
        self.fail_on.clear()

    def _check(self, op: str, relation: str) -> None:
        self.calls.append((op, relation))
        rule = self.fail_on.get((op, relation))
        if rule is None:
            return
        if rule[0] > 0:
            rule[0] -= 1
            return
        raise StoreError(rule[1], f"simulated {op} failure on {relation}")

    def writes(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] in ("insert", "update", "delete", "delete_where")]

    def insert(self, relation, item):
        self._check("insert", relation)
        return super().insert(relation, item)

    def get(self, relation, item_id):
        self._check("get", relation)
        return super().get(relation, item_id)

    def update(self, relation, item_id, fields):
        self._check("update", relation)
        return super().update(relation, item_id, fields)

    def delete(self, relation, item_id):
        self._check("delete", relation)
        return super().delete(relation, item_id)

    def delete_where(self, relation, filters):
        self._check("delete_where", relation)
        return super().delete_where(relation, filters)

    def select(self, relation, filters, order_by=None, descending=False):
        self._check("select", relation)
        return super().select(relation, filters, order_by, descending)

    def probe(self, relation):
        self._check("probe", relation)
        return super().probe(relation)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def selection():
    return MemorySelectionStore()


@pytest.fixture
def session(store, selection, clock, ids):
    return InventorySession(
        store, TENANT, selection_store=selection, clock=clock, id_factory=ids
    ).start()
