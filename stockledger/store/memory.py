"""Bellek içi defter deposu (demo ve testler için)."""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, Optional

from stockledger.store.base import RELATIONS, LedgerStore, matches, sort_items
from stockledger.store.errors import StoreError, StoreErrorKind

logger = logging.getLogger(__name__)


class MemoryLedgerStore(LedgerStore):
    """DynamoLedgerStore ile aynı anlamı taşıyan dict tabanlı depo.

    missing_relations verilen ilişkiler "tablo yok" gibi davranır; depo
    özelliği olmayan eski şemayı canlandırmak için kullanılır.
    """

    def __init__(self, missing_relations: Iterable[str] = ()):
        self.missing_relations = set(missing_relations)
        self._data: dict[str, dict[str, dict]] = {r: {} for r in RELATIONS}

    def _rows(self, relation: str) -> dict[str, dict]:
        if relation in self.missing_relations or relation not in self._data:
            raise StoreError(StoreErrorKind.RELATION_MISSING, f"relation {relation} does not exist")
        return self._data[relation]

    def insert(self, relation: str, item: dict) -> dict:
        rows = self._rows(relation)
        if item["id"] in rows:
            raise StoreError(StoreErrorKind.CONFLICT, f"{relation}/{item['id']} already exists")
        rows[item["id"]] = copy.deepcopy(item)
        return copy.deepcopy(item)

    def get(self, relation: str, item_id: str) -> Optional[dict]:
        row = self._rows(relation).get(item_id)
        return copy.deepcopy(row) if row is not None else None

    def update(self, relation: str, item_id: str, fields: dict) -> dict:
        if not fields:
            raise ValueError("update requires at least one field")
        rows = self._rows(relation)
        if item_id not in rows:
            raise StoreError(StoreErrorKind.NOT_FOUND, f"{relation}/{item_id} not found")
        rows[item_id].update(copy.deepcopy(fields))
        return copy.deepcopy(rows[item_id])

    def delete(self, relation: str, item_id: str) -> None:
        self._rows(relation).pop(item_id, None)

    def delete_where(self, relation: str, filters: dict[str, Any]) -> int:
        if not filters:
            raise ValueError("delete_where requires at least one filter")
        rows = self._rows(relation)
        doomed = [item_id for item_id, row in rows.items() if matches(row, filters)]
        for item_id in doomed:
            del rows[item_id]
        return len(doomed)

    def select(
        self,
        relation: str,
        filters: dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        rows = self._rows(relation)
        found = [copy.deepcopy(row) for row in rows.values() if matches(row, filters)]
        return sort_items(found, order_by, descending)

    def probe(self, relation: str) -> None:
        self._rows(relation)
