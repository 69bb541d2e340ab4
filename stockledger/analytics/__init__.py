from stockledger.analytics.periods import add_months, day_window, month_start, month_window
from stockledger.analytics.reconciliation import ledger_balances, reconcile_ledger
from stockledger.analytics.reconstruction import (
    average_monthly_consumption,
    classify_turnover,
    consumption_trend,
    daily_movements,
    month_over_month,
    movement_totals,
    opening_stock,
    product_performance,
    top_consumption,
    total_stock,
    turnover_rate,
)

__all__ = [
    "add_months",
    "average_monthly_consumption",
    "classify_turnover",
    "consumption_trend",
    "daily_movements",
    "day_window",
    "ledger_balances",
    "month_over_month",
    "month_start",
    "month_window",
    "movement_totals",
    "opening_stock",
    "product_performance",
    "reconcile_ledger",
    "top_consumption",
    "total_stock",
    "turnover_rate",
]
