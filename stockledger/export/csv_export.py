"""Hareket ve ürün listelerinin CSV dökümü.

Çıktı UTF-8 BOM ile başlar; tablolama programları Türkçe karakterleri
doğru açsın diye.
"""

from __future__ import annotations

import csv
import io
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from stockledger.analytics.periods import day_window, month_window, in_window
from stockledger.models.inventory import Product, Transaction, TransactionType, parse_timestamp

logger = logging.getLogger(__name__)

BOM = "\ufeff"
PERIOD_DAY = "day"
PERIOD_MONTH = "month"

TRANSACTION_HEADERS = ["ID", "Date", "Time", "Type", "Product", "Brand", "Amount", "Notes"]
PRODUCT_HEADERS = ["ID", "Name", "Brand", "Variant", "Quantity", "Threshold", "Status"]


class EmptyExportError(Exception):
    """Seçilen dönemde dışa aktarılacak kayıt yok."""

    def __init__(self, message: str = "no data for the selected period"):
        super().__init__(message)


@dataclass
class CsvExport:
    filename: str
    content: str
    rows: int


def _render(headers: list[str], rows: list[list]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return BOM + buffer.getvalue()


def export_filename(type_filter: Optional[TransactionType], period: str, when: datetime) -> str:
    kind = type_filter.value if type_filter is not None else "all"
    when = parse_timestamp(when)
    stamp = when.strftime("%Y-%m-%d") if period == PERIOD_DAY else when.strftime("%Y-%m")
    return f"stockledger_{kind}_{stamp}.csv"


def export_transactions(
    transactions: Iterable[Transaction],
    when: datetime,
    period: str = PERIOD_DAY,
    type_filter: Optional[TransactionType] = None,
) -> CsvExport:
    """Bir günün veya ayın hareketlerini CSV'ye döker.

    Raises:
        EmptyExportError: dönemde (ve tür filtresinde) hareket yoksa
        ValueError: period "day" veya "month" değilse
    """
    if period == PERIOD_DAY:
        window = day_window(when)
    elif period == PERIOD_MONTH:
        window = month_window(when)
    else:
        raise ValueError(f"unknown export period: {period}")

    selected = sorted(
        (
            t for t in transactions
            if in_window(t.created_at, window)
            and (type_filter is None or t.type == type_filter)
        ),
        key=lambda t: t.created_at,
    )
    if not selected:
        raise EmptyExportError()

    rows = [
        [
            t.id,
            t.created_at.strftime("%Y-%m-%d"),
            t.created_at.strftime("%H:%M:%S"),
            t.type.value,
            t.product_name,
            t.brand,
            t.amount,
            t.notes,
        ]
        for t in selected
    ]
    return CsvExport(
        filename=export_filename(type_filter, period, when),
        content=_render(TRANSACTION_HEADERS, rows),
        rows=len(rows),
    )


def export_products(products: Iterable[Product], when: datetime) -> CsvExport:
    """Anlık stok listesi; düşük stoklu ürünler "Low Stock" olarak işaretlenir."""
    rows = [
        [
            p.id,
            p.name,
            p.brand,
            p.variant,
            p.quantity,
            p.low_stock_threshold,
            "Low Stock" if p.is_low_stock else "Normal",
        ]
        for p in products
    ]
    if not rows:
        raise EmptyExportError("no products to export")
    stamp = parse_timestamp(when).strftime("%Y-%m-%d")
    return CsvExport(
        filename=f"stockledger_inventory_{stamp}.csv",
        content=_render(PRODUCT_HEADERS, rows),
        rows=len(rows),
    )


def save_export(export: CsvExport, directory: str) -> str:
    """CSV dosyasına kaydet."""
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, export.filename)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(export.content)
    logger.info("CSV kaydedildi: %s (%d kayıt)", path, export.rows)
    return path
