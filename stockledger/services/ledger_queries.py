"""Ledger Query Layer - Kiracı ve depo kapsamlı okumalar.

Tüm sorgular tenant_id eşitliğiyle kapsanır; warehouse_id verilmişse
depo filtresi de eklenir. Depo modu kapalıyken warehouse_id None gelir
ve filtre uygulanmaz.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from stockledger.models.inventory import Product, Transaction, TransactionType
from stockledger.store.base import PRODUCTS, TRANSACTIONS, LedgerStore

logger = logging.getLogger(__name__)


def _scope(tenant_id: str, warehouse_id: Optional[str]) -> dict:
    filters = {"tenant_id": tenant_id}
    if warehouse_id is not None:
        filters["warehouse_id"] = warehouse_id
    return filters


class LedgerQueries:
    def __init__(self, store: LedgerStore):
        self.store = store

    def list_products(self, tenant_id: str, warehouse_id: Optional[str] = None) -> list[Product]:
        """Ürünler, ada göre artan."""
        rows = self.store.select(PRODUCTS, _scope(tenant_id, warehouse_id), order_by="name")
        return [Product.from_item(r) for r in rows]

    def list_transactions(
        self, tenant_id: str, warehouse_id: Optional[str] = None
    ) -> list[Transaction]:
        """Gösterim için hareketler, en yeni önce."""
        rows = self.store.select(
            TRANSACTIONS, _scope(tenant_id, warehouse_id), order_by="created_at", descending=True
        )
        return [Transaction.from_item(r) for r in rows]

    def list_all_transactions(self, tenant_id: str) -> list[Transaction]:
        """Analiz için tüm geçmiş; depo filtresi yok, eskiden yeniye."""
        rows = self.store.select(TRANSACTIONS, {"tenant_id": tenant_id}, order_by="created_at")
        return [Transaction.from_item(r) for r in rows]

    def list_low_stock_products(
        self, tenant_id: str, warehouse_id: Optional[str] = None
    ) -> list[Product]:
        return [p for p in self.list_products(tenant_id, warehouse_id) if p.is_low_stock]

    def transactions_between(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        warehouse_id: Optional[str] = None,
        type_filter: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        """[start, end) aralığındaki hareketler, eskiden yeniye."""
        found = [
            t for t in self.list_transactions(tenant_id, warehouse_id)
            if start <= t.created_at < end
            and (type_filter is None or t.type == type_filter)
        ]
        found.reverse()
        return found
