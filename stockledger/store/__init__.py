from __future__ import annotations

from typing import Any, Optional

from stockledger.config import BACKEND_MEMORY, Settings
from stockledger.store.base import PRODUCTS, RELATIONS, TRANSACTIONS, WAREHOUSES, LedgerStore
from stockledger.store.dynamo import DynamoLedgerStore
from stockledger.store.errors import StoreError, StoreErrorKind, classify_client_error
from stockledger.store.memory import MemoryLedgerStore
from stockledger.store.selection import JsonSelectionStore, MemorySelectionStore


def create_store(settings: Settings, dynamodb_resource: Optional[Any] = None) -> LedgerStore:
    """Ayarlardaki backend'e göre depo örneği oluşturur."""
    if settings.backend == BACKEND_MEMORY:
        return MemoryLedgerStore()
    return DynamoLedgerStore(settings, dynamodb_resource=dynamodb_resource)


__all__ = [
    "PRODUCTS",
    "RELATIONS",
    "TRANSACTIONS",
    "WAREHOUSES",
    "DynamoLedgerStore",
    "JsonSelectionStore",
    "LedgerStore",
    "MemoryLedgerStore",
    "MemorySelectionStore",
    "StoreError",
    "StoreErrorKind",
    "classify_client_error",
    "create_store",
]
