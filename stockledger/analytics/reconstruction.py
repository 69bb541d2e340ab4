"""Analytics Reconstruction Engine - Defter + anlık görüntüden türetilen özetler.

Tüm fonksiyonlar saftır: depoya dokunmaz, girdilerini değiştirmez ve
aynı girdiyle her zaman aynı sonucu verir. Türetilmiş değerler hiçbir
yerde saklanmaz; her ihtiyaçta defterden yeniden hesaplanır.

"now" her fonksiyona parametre olarak verilir.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

from stockledger.analytics.periods import (
    add_months,
    days_in_month,
    in_window,
    month_start,
    month_window,
)
from stockledger.models.inventory import (
    ConsumptionRank,
    DailyMovement,
    MovementChange,
    OpeningStock,
    Product,
    ProductPerformance,
    Transaction,
    TransactionType,
    Trend,
    TrendResult,
    TurnoverRate,
    parse_timestamp,
)

TREND_BAND = 5
TOP_N = 5
TURNOVER_MONTH = timedelta(days=30)
HIGH_TURNOVER_MONTHS = 2
MED_TURNOVER_MONTHS = 6
EMPTY_STOCK_HIGH_CONSUMPTION = 10


def round_half_up(value: float) -> int:
    # 2.5 -> 3, -2.5 -> -2
    return int(math.floor(value + 0.5))


def percent_change(current: int, previous: int) -> int:
    return round_half_up(100 * (current - previous) / previous)


def _out_sum(
    transactions: Iterable[Transaction],
    product_id: Optional[str],
    window: tuple[datetime, datetime],
) -> int:
    return sum(
        t.amount for t in transactions
        if t.type == TransactionType.OUT
        and (product_id is None or t.product_id == product_id)
        and in_window(t.created_at, window)
    )


# --- Açılış stoğu ---


def opening_stock(
    products: Iterable[Product],
    transactions: Iterable[Transaction],
    month_begin: datetime,
) -> list[OpeningStock]:
    """Ay başındaki stok = güncel miktar - ay başından beri net hareket (alt sınır 0)."""
    month_begin = parse_timestamp(month_begin)
    net: dict[str, int] = {}
    for t in transactions:
        if t.created_at >= month_begin:
            net[t.product_id] = net.get(t.product_id, 0) + t.signed_amount

    result = []
    for p in products:
        change = net.get(p.id, 0)
        result.append(
            OpeningStock(
                product_id=p.id,
                name=p.name,
                opening_qty=max(0, p.quantity - change),
                current_qty=p.quantity,
                net_change=change,
                brand=p.brand,
                variant=p.variant,
            )
        )
    return result


# --- Aylık tüketim trendi ---


def consumption_trend(
    transactions: Iterable[Transaction], product_id: str, now: datetime
) -> TrendResult:
    """Bu ayın çıkışını geçen ayınkiyle karşılaştırır.

    ±5 puanlık bant içi "stable"; sınır dahil değildir (5 -> stable).
    """
    transactions = list(transactions)
    this_window = month_window(now)
    last_window = (add_months(this_window[0], -1), this_window[0])
    this_out = _out_sum(transactions, product_id, this_window)
    last_out = _out_sum(transactions, product_id, last_window)

    if last_out == 0:
        if this_out > 0:
            return TrendResult(Trend.UP, 100)
        return TrendResult(Trend.STABLE, 0)

    pct = percent_change(this_out, last_out)
    if pct > TREND_BAND:
        trend = Trend.UP
    elif pct < -TREND_BAND:
        trend = Trend.DOWN
    else:
        trend = Trend.STABLE
    return TrendResult(trend, abs(pct))


# --- Devir hızı ---


def average_monthly_consumption(
    transactions: Iterable[Transaction], product_id: str, now: datetime
) -> float:
    """Toplam çıkış / ilk çıkıştan bugüne geçen 30 günlük ay sayısı (en az 1)."""
    outs = [
        t for t in transactions
        if t.product_id == product_id and t.type == TransactionType.OUT
    ]
    if not outs:
        return 0.0
    earliest = min(t.created_at for t in outs)
    months = max(1.0, (parse_timestamp(now) - earliest) / TURNOVER_MONTH)
    return sum(t.amount for t in outs) / months


def classify_turnover(quantity: int, avg_monthly: float) -> TurnoverRate:
    if quantity > 0:
        months_of_stock = quantity / max(avg_monthly, 1)
        if months_of_stock < HIGH_TURNOVER_MONTHS:
            return TurnoverRate.HIGH
        if months_of_stock < MED_TURNOVER_MONTHS:
            return TurnoverRate.MED
        return TurnoverRate.LOW
    if avg_monthly > EMPTY_STOCK_HIGH_CONSUMPTION:
        return TurnoverRate.HIGH
    return TurnoverRate.LOW


def turnover_rate(
    product: Product, transactions: Iterable[Transaction], now: datetime
) -> TurnoverRate:
    return classify_turnover(
        product.quantity, average_monthly_consumption(transactions, product.id, now)
    )


# --- En çok tüketilenler ---


def top_consumption(
    transactions: Iterable[Transaction],
    products: Iterable[Product],
    month: datetime,
    n: int = TOP_N,
) -> list[ConsumptionRank]:
    """Ay içindeki çıkışları ürün bazında toplar, ilk n'i sıralar.

    Yüzde, listedeki en yüksek tüketime göredir (çubuk genişliği için).
    """
    window = month_window(month)
    images = {p.id: p.image_url for p in products}

    usage: dict[str, ConsumptionRank] = {}
    for t in sorted(transactions, key=lambda t: t.created_at):
        if t.type != TransactionType.OUT or not in_window(t.created_at, window):
            continue
        rank = usage.get(t.product_id)
        if rank is None:
            rank = usage[t.product_id] = ConsumptionRank(
                product_id=t.product_id,
                name=t.product_name,
                brand=t.brand,
                usage=0,
                percentage=0,
            )
        # Görünen ad ve marka en son harekettekidir
        rank.name = t.product_name
        rank.brand = t.brand
        rank.usage += t.amount
        rank.image_url = images.get(t.product_id, "")

    ranked = sorted(usage.values(), key=lambda r: r.usage, reverse=True)[:n]
    if not ranked:
        return []
    top = ranked[0].usage or 1
    for r in ranked:
        r.percentage = round_half_up(100 * r.usage / top)
    return ranked


# --- Günlük hareket serisi ---


def daily_movements(
    transactions: Iterable[Transaction],
    product_id: str,
    month: datetime,
    now: datetime,
) -> list[DailyMovement]:
    """Ayın her günü için giriş/çıkış toplamı; içinde bulunulan ayın gelecek günleri None."""
    window = month_window(month)
    start = window[0]
    now = parse_timestamp(now)
    is_current = month_start(now) == start

    daily: dict[int, list[int]] = {}
    for t in transactions:
        if t.product_id != product_id or not in_window(t.created_at, window):
            continue
        sums = daily.setdefault(t.created_at.day, [0, 0])
        if t.type == TransactionType.IN:
            sums[0] += t.amount
        else:
            sums[1] += t.amount

    series = []
    for day in range(1, days_in_month(start) + 1):
        label = f"{start.month}/{day}"
        if is_current and day > now.day:
            series.append(DailyMovement(day, label, None, None))
            continue
        stock_in, stock_out = daily.get(day, (0, 0))
        series.append(DailyMovement(day, label, stock_in, stock_out))
    return series


# --- Toplamlar ---


def movement_totals(transactions: Iterable[Transaction]) -> tuple[int, int]:
    """(toplam giriş, toplam çıkış)."""
    total_in = 0
    total_out = 0
    for t in transactions:
        if t.type == TransactionType.IN:
            total_in += t.amount
        else:
            total_out += t.amount
    return total_in, total_out


def total_stock(products: Iterable[Product]) -> int:
    return sum(p.quantity for p in products)


def month_over_month(
    transactions: Iterable[Transaction], kind: TransactionType, now: datetime
) -> MovementChange:
    """Bu ay ile geçen ayın giriş (veya çıkış) toplamı karşılaştırması.

    Geçen ay boşsa yüzde None; bu ay hareket varsa new_activity=True.
    """
    this_window = month_window(now)
    last_window = (add_months(this_window[0], -1), this_window[0])
    current = 0
    previous = 0
    for t in transactions:
        if t.type != kind:
            continue
        if in_window(t.created_at, this_window):
            current += t.amount
        elif in_window(t.created_at, last_window):
            previous += t.amount

    if previous == 0:
        return MovementChange(current, previous, None, new_activity=current > 0)
    return MovementChange(current, previous, percent_change(current, previous))


# --- Ürün performans tablosu ---


def _matches_search(product: Product, query: str) -> bool:
    if not query:
        return True
    query = query.lower()
    return (
        query in product.name.lower()
        or query in product.brand.lower()
        or query in product.variant.lower()
    )


def product_performance(
    products: Iterable[Product],
    transactions: Iterable[Transaction],
    now: datetime,
    search: str = "",
) -> list[ProductPerformance]:
    """Ürün başına toplam tüketim, trend ve devir hızı; tüketime göre azalan."""
    transactions = list(transactions)
    consumed: dict[str, int] = {}
    for t in transactions:
        if t.type == TransactionType.OUT:
            consumed[t.product_id] = consumed.get(t.product_id, 0) + t.amount

    rows = []
    for p in products:
        if not _matches_search(p, search.strip()):
            continue
        trend = consumption_trend(transactions, p.id, now)
        rows.append(
            ProductPerformance(
                product_id=p.id,
                name=p.name,
                brand=p.brand,
                variant=p.variant,
                consumed=consumed.get(p.id, 0),
                in_stock=p.quantity,
                trend=trend.trend,
                trend_value=trend.percent_change,
                turnover_rate=turnover_rate(p, transactions, now),
            )
        )
    rows.sort(key=lambda r: r.consumed, reverse=True)
    return rows
