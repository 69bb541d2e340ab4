from stockledger.models.inventory import (
    ConsumptionRank,
    DailyMovement,
    MovementChange,
    OpeningStock,
    Product,
    ProductPerformance,
    StockAdjustment,
    Transaction,
    TransactionType,
    Trend,
    TrendResult,
    TurnoverRate,
    Warehouse,
    format_timestamp,
    parse_timestamp,
    utc_now,
)
from stockledger.models.results import OperationResult, ResultStatus

__all__ = [
    "ConsumptionRank",
    "DailyMovement",
    "MovementChange",
    "OpeningStock",
    "OperationResult",
    "Product",
    "ProductPerformance",
    "StockAdjustment",
    "ResultStatus",
    "Transaction",
    "TransactionType",
    "Trend",
    "TrendResult",
    "TurnoverRate",
    "Warehouse",
    "format_timestamp",
    "parse_timestamp",
    "utc_now",
]
