"""Depo sınırı: üç ilişki üzerinde nokta CRUD ve kapsamlı sorgu."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

WAREHOUSES = "warehouses"
PRODUCTS = "products"
TRANSACTIONS = "transactions"

RELATIONS = (WAREHOUSES, PRODUCTS, TRANSACTIONS)


def sort_items(items: list[dict], order_by: Optional[str], descending: bool = False) -> list[dict]:
    """Tek kolona göre sıralar; alanı olmayan kayıtlar sona düşer."""
    if not order_by:
        return items
    present = [i for i in items if i.get(order_by) is not None]
    missing = [i for i in items if i.get(order_by) is None]
    present.sort(key=lambda i: i[order_by], reverse=descending)
    return present + missing


def matches(item: dict, filters: dict[str, Any]) -> bool:
    return all(item.get(key) == value for key, value in filters.items())


class LedgerStore(ABC):
    """Depo, ürün ve hareket ilişkileri için erişim arayüzü.

    Tüm hatalar StoreError olarak yükseltilir. İlişkiler arası işlem
    (transaction) desteği beklenmez; çok adımlı tutarlılığı motor sağlar.
    """

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    def insert(self, relation: str, item: dict) -> dict:
        ...

    @abstractmethod
    def get(self, relation: str, item_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def update(self, relation: str, item_id: str, fields: dict) -> dict:
        """Kısmi güncelleme; kayıt yoksa NOT_FOUND."""
        ...

    @abstractmethod
    def delete(self, relation: str, item_id: str) -> None:
        ...

    @abstractmethod
    def delete_where(self, relation: str, filters: dict[str, Any]) -> int:
        """Eşitlik filtresine uyan kayıtları siler, silinen sayıyı döndürür."""
        ...

    @abstractmethod
    def select(
        self,
        relation: str,
        filters: dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        ...

    @abstractmethod
    def probe(self, relation: str) -> None:
        """İlişkinin var ve erişilebilir olduğunu doğrular."""
        ...
