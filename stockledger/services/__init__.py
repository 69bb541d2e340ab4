from stockledger.services.ledger_queries import LedgerQueries
from stockledger.services.session import InventorySession
from stockledger.services.stock_mutations import (
    BUSY_MESSAGE,
    StockMutationEngine,
    ValidationError,
    effective_amount,
    resulting_quantity,
)
from stockledger.services.warehouse_scope import WarehouseScopeResolver

__all__ = [
    "BUSY_MESSAGE",
    "InventorySession",
    "LedgerQueries",
    "StockMutationEngine",
    "ValidationError",
    "WarehouseScopeResolver",
    "effective_amount",
    "resulting_quantity",
]
