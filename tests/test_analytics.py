"""Analytics Reconstruction Engine unit testleri."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from conftest import NOW, TENANT
from stockledger.analytics import (
    add_months,
    classify_turnover,
    consumption_trend,
    daily_movements,
    month_over_month,
    month_start,
    movement_totals,
    opening_stock,
    product_performance,
    top_consumption,
    total_stock,
    turnover_rate,
)
from stockledger.analytics.reconstruction import round_half_up
from stockledger.models import Product, Transaction, TransactionType, Trend, TurnoverRate

_ids = itertools.count(1)

IN = TransactionType.IN
OUT = TransactionType.OUT
THIS_MONTH = datetime(2024, 5, 3, 9, 0, tzinfo=timezone.utc)
LAST_MONTH = datetime(2024, 4, 20, 9, 0, tzinfo=timezone.utc)
TWO_MONTHS_AGO = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)


def _tx(product_id, kind, amount, when, name=None, brand=""):
    return Transaction(
        id=f"tx-{next(_ids)}", tenant_id=TENANT, product_id=product_id,
        product_name=name or product_id, brand=brand, type=kind, amount=amount, created_at=when,
    )


def _product(pid, quantity, brand="", variant="", image_url=""):
    return Product(
        id=pid, tenant_id=TENANT, name=pid, brand=brand, variant=variant,
        quantity=quantity, image_url=image_url, created_at=TWO_MONTHS_AGO,
    )


class TestOpeningStock:
    """Ay başı stoğu = güncel - ay içindeki net hareket."""

    def test_no_movement_this_month_equals_current(self):
        """Özellik 5: bu ay hareket yoksa açılış = güncel."""
        products = [_product("a", 12)]
        txs = [_tx("a", IN, 20, LAST_MONTH), _tx("a", OUT, 8, LAST_MONTH)]
        [row] = opening_stock(products, txs, month_start(NOW))
        assert row.opening_qty == row.current_qty == 12
        assert row.net_change == 0

    def test_net_change_subtracted(self):
        products = [_product("a", 12)]
        txs = [_tx("a", IN, 5, THIS_MONTH), _tx("a", OUT, 3, THIS_MONTH), _tx("a", IN, 10, LAST_MONTH)]
        [row] = opening_stock(products, txs, month_start(NOW))
        assert row.net_change == 2
        assert row.opening_qty == 10

    def test_earlier_month_includes_later_movements(self):
        products = [_product("a", 12)]
        txs = [_tx("a", IN, 5, THIS_MONTH), _tx("a", OUT, 3, LAST_MONTH)]
        [row] = opening_stock(products, txs, add_months(month_start(NOW), -1))
        assert row.net_change == 2
        assert row.opening_qty == 10

    def test_opening_floored_at_zero(self):
        [row] = opening_stock([_product("a", 0)], [_tx("a", IN, 5, THIS_MONTH)], month_start(NOW))
        assert row.opening_qty == 0

    def test_is_deterministic(self):
        products = [_product("a", 7), _product("b", 3)]
        txs = [_tx("a", OUT, 2, THIS_MONTH), _tx("b", IN, 1, THIS_MONTH)]
        first = opening_stock(products, txs, month_start(NOW))
        assert first == opening_stock(products, txs, month_start(NOW))


class TestConsumptionTrend:
    """Özellik 10: ±5 bandı sınırı dahil değildir."""

    @pytest.mark.parametrize("last, this, trend, value", [
        (20, 21, Trend.STABLE, 5),
        (20, 22, Trend.UP, 10),
        (20, 19, Trend.STABLE, 5),
        (20, 18, Trend.DOWN, 10),
        (200, 211, Trend.UP, 6),
        (0, 3, Trend.UP, 100),
        (0, 0, Trend.STABLE, 0),
        (10, 0, Trend.DOWN, 100),
    ])
    def test_trend_classification(self, last, this, trend, value):
        txs = []
        if last:
            txs.append(_tx("a", OUT, last, LAST_MONTH))
        if this:
            txs.append(_tx("a", OUT, this, THIS_MONTH))
        result = consumption_trend(txs, "a", NOW)
        assert result.trend == trend
        assert result.percent_change == value

    def test_only_out_of_same_product_counted(self):
        txs = [
            _tx("a", OUT, 20, LAST_MONTH),
            _tx("a", OUT, 20, THIS_MONTH),
            _tx("a", IN, 50, THIS_MONTH),
            _tx("b", OUT, 50, THIS_MONTH),
            _tx("a", OUT, 99, TWO_MONTHS_AGO),
        ]
        assert consumption_trend(txs, "a", NOW).trend == Trend.STABLE

    def test_january_compares_with_december(self):
        now = datetime(2024, 1, 10, tzinfo=timezone.utc)
        txs = [
            _tx("a", OUT, 10, datetime(2023, 12, 5, tzinfo=timezone.utc)),
            _tx("a", OUT, 20, datetime(2024, 1, 2, tzinfo=timezone.utc)),
        ]
        result = consumption_trend(txs, "a", now)
        assert result.trend == Trend.UP
        assert result.percent_change == 100


class TestTurnover:
    """Özellik 9: kalan stok ay sayısına göre sınıflandırma."""

    @pytest.mark.parametrize("quantity, avg, expected", [
        (100, 60, TurnoverRate.HIGH),
        (100, 10, TurnoverRate.LOW),
        (100, 30, TurnoverRate.MED),
        (5, 0, TurnoverRate.MED),
        (0, 11, TurnoverRate.HIGH),
        (0, 10, TurnoverRate.LOW),
    ])
    def test_classification(self, quantity, avg, expected):
        assert classify_turnover(quantity, avg) == expected

    def test_average_over_elapsed_months(self):
        # 60 gün = 2 ay, 120 adet -> ayda 60 -> 100 / 60 < 2
        txs = [_tx("a", OUT, 60, NOW - timedelta(days=60)), _tx("a", OUT, 60, NOW - timedelta(days=1))]
        assert turnover_rate(_product("a", 100), txs, NOW) == TurnoverRate.HIGH

    def test_recent_consumption_counts_as_one_month(self):
        txs = [_tx("a", OUT, 10, NOW - timedelta(days=5))]
        assert turnover_rate(_product("a", 100), txs, NOW) == TurnoverRate.LOW

    def test_no_consumption(self):
        assert turnover_rate(_product("a", 3), [_tx("a", IN, 3, LAST_MONTH)], NOW) == TurnoverRate.MED
        assert turnover_rate(_product("a", 0), [], NOW) == TurnoverRate.LOW


class TestTopConsumption:
    """Ay içindeki en çok tüketilen ürünler."""

    def test_ranking_and_percentages(self):
        txs = [
            _tx("a", OUT, 10, THIS_MONTH),
            _tx("b", OUT, 3, THIS_MONTH),
            _tx("b", OUT, 2, THIS_MONTH),
            _tx("c", OUT, 3, THIS_MONTH),
            _tx("c", IN, 40, THIS_MONTH),
            _tx("d", OUT, 50, LAST_MONTH),
        ]
        products = [_product("a", 1, image_url="a.png")]
        ranked = top_consumption(txs, products, NOW)

        assert [(r.product_id, r.usage, r.percentage) for r in ranked] == [
            ("a", 10, 100), ("b", 5, 50), ("c", 3, 30),
        ]
        assert ranked[0].image_url == "a.png"
        assert ranked[1].image_url == ""

    def test_limited_to_top_n(self):
        txs = [_tx(f"p{i}", OUT, i + 1, THIS_MONTH) for i in range(7)]
        ranked = top_consumption(txs, [], NOW)
        assert len(ranked) == 5
        assert ranked[0].product_id == "p6"

    def test_empty_month(self):
        assert top_consumption([_tx("a", OUT, 1, LAST_MONTH)], [], NOW) == []


class TestDailyMovements:
    """Günlük giriş/çıkış serisi."""

    def test_current_month_future_days_are_none(self):
        txs = [_tx("a", IN, 4, THIS_MONTH), _tx("a", OUT, 1, THIS_MONTH), _tx("b", OUT, 9, THIS_MONTH)]
        series = daily_movements(txs, "a", NOW, NOW)

        assert len(series) == 31
        assert series[2].label == "5/3"
        assert (series[2].stock_in, series[2].stock_out) == (4, 1)
        assert (series[14].stock_in, series[14].stock_out) == (0, 0)
        assert series[15].stock_in is None
        assert series[30].stock_out is None

    def test_past_month_is_complete(self):
        series = daily_movements([_tx("a", OUT, 2, LAST_MONTH)], "a", LAST_MONTH, NOW)
        assert len(series) == 30
        assert all(d.stock_in is not None for d in series)
        assert series[19].stock_out == 2


class TestTotalsAndChange:
    """Toplamlar ve aylık değişim."""

    def test_totals(self):
        txs = [_tx("a", IN, 10, THIS_MONTH), _tx("a", OUT, 4, LAST_MONTH)]
        assert movement_totals(txs) == (10, 4)
        assert total_stock([_product("a", 6), _product("b", 2)]) == 8

    def test_month_over_month(self):
        txs = [_tx("a", IN, 10, THIS_MONTH), _tx("a", IN, 5, LAST_MONTH), _tx("a", IN, 7, TWO_MONTHS_AGO)]
        change = month_over_month(txs, IN, NOW)
        assert (change.current, change.previous, change.percent_change) == (10, 5, 100)

    def test_new_activity_when_last_month_empty(self):
        change = month_over_month([_tx("a", OUT, 3, THIS_MONTH)], OUT, NOW)
        assert change.percent_change is None
        assert change.new_activity is True

    def test_no_activity(self):
        change = month_over_month([], OUT, NOW)
        assert change.percent_change is None
        assert change.new_activity is False

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(-2.5) == -2
        assert round_half_up(5.4) == 5


class TestProductPerformance:
    """Ürün performans tablosu."""

    def test_sorted_by_consumption_and_searchable(self):
        products = [
            _product("a", 10, brand="Acme"),
            _product("b", 0, brand="Other", variant="Large"),
        ]
        txs = [
            _tx("a", OUT, 2, THIS_MONTH),
            _tx("b", OUT, 30, LAST_MONTH),
            _tx("b", OUT, 15, THIS_MONTH),
        ]
        rows = product_performance(products, txs, NOW)

        assert [r.product_id for r in rows] == ["b", "a"]
        assert rows[0].consumed == 45
        assert rows[0].trend == Trend.DOWN
        assert rows[0].trend_value == 50
        assert rows[1].trend == Trend.UP
        assert [r.product_id for r in product_performance(products, txs, NOW, search="LARGE")] == ["b"]
        assert [r.product_id for r in product_performance(products, txs, NOW, search="acme")] == ["a"]
