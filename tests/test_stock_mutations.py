"""Stock Mutation Engine unit testleri."""

from datetime import timedelta

import pytest

from conftest import NOW, TENANT, FlakyStore
from stockledger.config import INITIAL_STOCK_NOTE, Settings
from stockledger.models import Product, ResultStatus, Transaction, TransactionType, Warehouse
from stockledger.services import (
    BUSY_MESSAGE,
    InventorySession,
    StockMutationEngine,
    WarehouseScopeResolver,
    effective_amount,
    resulting_quantity,
)
from stockledger.services.stock_mutations import NO_ACTIVE_WAREHOUSE_MESSAGE
from stockledger.store import DynamoLedgerStore
from stockledger.store.base import PRODUCTS, TRANSACTIONS, WAREHOUSES


def _stored_product(store, product_id):
    row = store.get(PRODUCTS, product_id)
    return Product.from_item(row) if row else None


def _stored_transactions(store, product_id):
    rows = store.select(TRANSACTIONS, {"product_id": product_id}, order_by="created_at")
    return [Transaction.from_item(r) for r in rows]


def _ledger_sum(transactions):
    return sum(t.signed_amount for t in transactions)


def _create(session, quantity=10, name="Shampoo"):
    result = session.create_product(name, brand="Acme", initial_quantity=quantity)
    assert result.ok
    return result.data


class TestCreateProduct:
    """Ürün oluşturma ve sentetik başlangıç hareketi."""

    def test_initial_quantity_writes_one_in_transaction(self, session, store):
        product = _create(session, 10)
        txs = _stored_transactions(store, product.id)

        assert _stored_product(store, product.id).quantity == 10
        assert len(txs) == 1
        assert txs[0].type == TransactionType.IN
        assert txs[0].amount == 10
        assert txs[0].notes == INITIAL_STOCK_NOTE
        assert txs[0].created_at == NOW
        assert txs[0].warehouse_id == session.warehouse_id

    def test_zero_quantity_writes_no_transaction(self, session, store):
        product = _create(session, 0)
        assert _stored_transactions(store, product.id) == []

    def test_backdated_initial_entry(self, session, store):
        backdated = NOW - timedelta(days=40)
        result = session.create_product("Gel", initial_quantity=4, backdated_at=backdated)
        txs = _stored_transactions(store, result.data.id)
        assert txs[0].created_at == backdated
        assert result.data.created_at == NOW

    def test_name_is_trimmed(self, session):
        assert _create(session, 1, name="  Wax  ").name == "Wax"

    @pytest.mark.parametrize("name, quantity", [
        ("", 5),
        ("   ", 5),
        ("Gel", "abc"),
        ("Gel", -1),
        ("Gel", True),
    ])
    def test_invalid_input_rejected_without_writes(self, session, store, name, quantity):
        store.calls.clear()
        result = session.create_product(name, initial_quantity=quantity)
        assert result.status == ResultStatus.REJECTED
        assert result.changed_nothing
        assert store.writes() == []

    def test_numeric_string_quantity_accepted(self, session):
        assert _create(session, "7").quantity == 7

    def test_product_write_failure(self, session, store):
        store.fail("insert", PRODUCTS)
        result = session.create_product("Gel", initial_quantity=3)
        assert result.status == ResultStatus.FAILED
        assert store.select(PRODUCTS, {"tenant_id": TENANT}) == []

    def test_unresolved_warehouse_fails_without_writes(self, session, store):
        """Depo listesi okunamazsa depo kimliksiz ürün yazılmaz."""
        session.scope._active_id = None
        store.fail("select", WAREHOUSES)
        store.calls.clear()

        result = session.engine.create_product("Gel", initial_quantity=2)

        assert result.status == ResultStatus.FAILED
        assert result.error == NO_ACTIVE_WAREHOUSE_MESSAGE
        assert store.writes() == []

    def test_initial_transaction_failure_keeps_product(self, session, store):
        """Varsayılan: ürün korunur, uyarı döner."""
        store.fail("insert", TRANSACTIONS)
        result = session.create_product("Gel", initial_quantity=3)

        assert result.status == ResultStatus.PARTIAL
        assert result.ok
        assert result.warnings
        assert _stored_product(store, result.data.id).quantity == 3
        assert _stored_transactions(store, result.data.id) == []

    def test_strict_mode_rolls_back_product(self, session, store):
        session.engine.strict_initial_stock = True
        store.fail("insert", TRANSACTIONS)
        result = session.create_product("Gel", initial_quantity=3)

        assert result.status == ResultStatus.ROLLED_BACK
        assert result.changed_nothing
        assert store.select(PRODUCTS, {"tenant_id": TENANT}) == []

    def test_strict_mode_failed_rollback_is_inconsistent(self, session, store):
        session.engine.strict_initial_stock = True
        store.fail("insert", TRANSACTIONS)
        store.fail("delete", PRODUCTS)
        result = session.create_product("Gel", initial_quantity=3)

        assert result.status == ResultStatus.INCONSISTENT
        assert "manual reconciliation required" in result.error


class TestAdjustStock:
    """Stok girişi/çıkışı, sınırlandırma ve telafi."""

    def test_quantity_matches_ledger_sum(self, session, store):
        """Özellik 1: miktar = Σ(in) - Σ(out)."""
        product = _create(session, 10)
        for amount, direction in [(5, "in"), (3, "out"), (7, "in"), (2, "out")]:
            assert session.adjust_stock(product.id, amount, direction).ok
            stored = _stored_product(store, product.id)
            assert stored.quantity == _ledger_sum(_stored_transactions(store, product.id))
        assert _stored_product(store, product.id).quantity == 17

    def test_withdrawal_is_clamped(self, session, store):
        """Özellik 2: mevcut stoktan fazla çıkış, mevcut stok kadar kaydedilir."""
        product = _create(session, 10)
        result = session.adjust_stock(product.id, 15, TransactionType.OUT)

        assert result.ok
        assert result.data.requested_amount == 15
        assert result.data.effective_amount == 10
        assert result.data.transaction.amount == 10
        assert _stored_product(store, product.id).quantity == 0

    def test_failed_transaction_write_restores_quantity(self, session, store):
        """Özellik 3: hareket yazılamazsa miktar eski değerine döner."""
        product = _create(session, 10)
        store.fail("insert", TRANSACTIONS)
        result = session.adjust_stock(product.id, 4, "out")

        assert result.status == ResultStatus.ROLLED_BACK
        assert result.changed_nothing
        assert _stored_product(store, product.id).quantity == 10
        assert len(_stored_transactions(store, product.id)) == 1

    def test_failed_restore_is_inconsistent(self, session, store):
        product = _create(session, 10)
        store.fail("insert", TRANSACTIONS)
        store.fail("update", PRODUCTS, after=1)
        result = session.adjust_stock(product.id, 4, "in")

        assert result.status == ResultStatus.INCONSISTENT
        assert "manual reconciliation required" in result.error
        assert _stored_product(store, product.id).quantity == 14

    def test_failed_quantity_write_writes_no_transaction(self, session, store):
        product = _create(session, 10)
        store.fail("update", PRODUCTS)
        result = session.adjust_stock(product.id, 4, "in")

        assert result.status == ResultStatus.FAILED
        assert len(_stored_transactions(store, product.id)) == 1

    def test_quantity_written_before_transaction(self, session, store):
        product = _create(session, 10)
        store.calls.clear()
        session.adjust_stock(product.id, 1, "in")
        assert store.writes() == [("update", PRODUCTS), ("insert", TRANSACTIONS)]

    def test_withdrawal_from_empty_stock_rejected(self, session, store):
        product = _create(session, 0)
        store.calls.clear()
        result = session.adjust_stock(product.id, 1, "out")
        assert result.status == ResultStatus.REJECTED
        assert store.writes() == []

    @pytest.mark.parametrize("amount, direction", [(0, "in"), (-3, "out"), ("x", "in"), (2, "sideways")])
    def test_invalid_adjustment_rejected(self, session, amount, direction):
        product = _create(session, 10)
        result = session.adjust_stock(product.id, amount, direction)
        assert result.status == ResultStatus.REJECTED

    def test_unknown_product_rejected(self, session):
        assert session.adjust_stock("missing", 1, "in").status == ResultStatus.REJECTED

    def test_other_tenant_product_rejected(self, session, store):
        store.insert(PRODUCTS, Product(id="foreign", tenant_id="other", name="X", quantity=5).to_item())
        assert session.adjust_stock("foreign", 1, "out").status == ResultStatus.REJECTED
        assert _stored_product(store, "foreign").quantity == 5

    def test_backdated_movement(self, session, store):
        product = _create(session, 10)
        backdated = NOW - timedelta(days=3)
        result = session.adjust_stock(product.id, 2, "out", backdated_at=backdated.isoformat())
        assert result.data.transaction.created_at == backdated

    def test_transaction_keeps_product_name_at_write_time(self, session, store):
        product = _create(session, 10)
        tx = session.adjust_stock(product.id, 1, "out").data.transaction
        store.update(PRODUCTS, product.id, {"name": "Renamed"})
        stored = [t for t in _stored_transactions(store, product.id) if t.id == tx.id][0]
        assert stored.product_name == "Shampoo"
        assert stored.brand == "Acme"


class TestDeleteTransaction:
    """Özellik 4: hareket silme miktarı geri çeker."""

    def test_deleting_in_subtracts(self, session, store):
        product = _create(session, 10)
        tx = session.adjust_stock(product.id, 5, "in").data.transaction
        assert session.delete_transaction(tx.id).ok
        assert _stored_product(store, product.id).quantity == 10
        assert store.get(TRANSACTIONS, tx.id) is None

    def test_deleting_out_adds_back(self, session, store):
        product = _create(session, 10)
        tx = session.adjust_stock(product.id, 4, "out").data.transaction
        assert session.delete_transaction(tx.id).ok
        assert _stored_product(store, product.id).quantity == 10

    def test_result_is_floored_at_zero(self, session, store):
        product = _create(session, 10)
        session.adjust_stock(product.id, 8, "out")
        initial = next(t for t in _stored_transactions(store, product.id) if t.type == TransactionType.IN)
        assert session.delete_transaction(initial.id).ok
        assert _stored_product(store, product.id).quantity == 0

    def test_failed_quantity_write_keeps_transaction(self, session, store):
        product = _create(session, 10)
        tx = session.adjust_stock(product.id, 5, "in").data.transaction
        store.fail("update", PRODUCTS)
        result = session.delete_transaction(tx.id)

        assert result.status == ResultStatus.FAILED
        assert store.get(TRANSACTIONS, tx.id) is not None
        assert _stored_product(store, product.id).quantity == 15

    def test_failed_delete_restores_quantity(self, session, store):
        product = _create(session, 10)
        tx = session.adjust_stock(product.id, 5, "in").data.transaction
        store.fail("delete", TRANSACTIONS)
        result = session.delete_transaction(tx.id)

        assert result.status == ResultStatus.ROLLED_BACK
        assert store.get(TRANSACTIONS, tx.id) is not None
        assert _stored_product(store, product.id).quantity == 15

    def test_failed_restore_is_inconsistent(self, session, store):
        product = _create(session, 10)
        tx = session.adjust_stock(product.id, 5, "in").data.transaction
        store.fail("delete", TRANSACTIONS)
        store.fail("update", PRODUCTS, after=1)
        result = session.delete_transaction(tx.id)
        assert result.status == ResultStatus.INCONSISTENT

    def test_unknown_transaction_rejected(self, session):
        assert session.delete_transaction("missing").status == ResultStatus.REJECTED

    def test_orphan_transaction_deleted_without_quantity_change(self, session, store):
        store.insert(TRANSACTIONS, Transaction(
            id="orphan", tenant_id=TENANT, product_id="gone", product_name="Gone",
            type=TransactionType.IN, amount=3, created_at=NOW,
        ).to_item())
        result = session.delete_transaction("orphan")
        assert result.ok
        assert result.warnings
        assert store.get(TRANSACTIONS, "orphan") is None


class TestDeleteProduct:
    """Özellik 6: ürün silme hareketleri de siler."""

    def test_cascade_removes_all_transactions(self, session, store):
        product = _create(session, 10)
        for _ in range(3):
            session.adjust_stock(product.id, 1, "out")
        other = _create(session, 2, name="Other")

        store.calls.clear()
        result = session.delete_product(product.id)

        assert result.ok
        assert result.data["transactions_removed"] == 4
        assert store.get(PRODUCTS, product.id) is None
        assert _stored_transactions(store, product.id) == []
        assert len(_stored_transactions(store, other.id)) == 1
        assert store.writes() == [("delete_where", TRANSACTIONS), ("delete", PRODUCTS)]

    def test_transaction_cascade_failure_keeps_product(self, session, store):
        product = _create(session, 10)
        store.fail("delete_where", TRANSACTIONS)
        result = session.delete_product(product.id)

        assert result.status == ResultStatus.PARTIAL
        assert not result.ok
        assert store.get(PRODUCTS, product.id) is not None

    def test_product_delete_failure_after_cascade(self, session, store):
        product = _create(session, 10)
        store.fail("delete", PRODUCTS)
        result = session.delete_product(product.id)

        assert result.status == ResultStatus.PARTIAL
        assert result.error
        assert _stored_transactions(store, product.id) == []

    def test_unknown_product_rejected(self, session):
        assert session.delete_product("missing").status == ResultStatus.REJECTED


class TestDeleteWarehouse:
    """Özellik 7: varsayılan ve tek depo korunur; silme zincirleme yapılır."""

    def test_default_warehouse_protected(self, session, store):
        session.create_warehouse("Second")
        default_id = next(w.id for w in session.warehouses if w.is_default)
        store.calls.clear()

        result = session.delete_warehouse(default_id)

        assert result.status == ResultStatus.REJECTED
        assert store.writes() == []
        assert store.get(WAREHOUSES, default_id) is not None

    def test_only_warehouse_protected(self, store, clock, ids):
        store.insert(WAREHOUSES, Warehouse(id="solo", tenant_id=TENANT, name="Solo", created_at=NOW).to_item())
        session = InventorySession(store, TENANT, clock=clock, id_factory=ids).start()
        store.calls.clear()

        result = session.delete_warehouse("solo")

        assert result.status == ResultStatus.REJECTED
        assert "only" in result.error
        assert store.writes() == []

    def test_cascade_and_scope_reassignment(self, session, store):
        default = session.active_warehouse
        kept = _create(session, 5, name="Kept")
        second = session.create_warehouse("Second").data
        assert session.switch_warehouse(second.id)
        doomed = _create(session, 10, name="Doomed")
        session.adjust_stock(doomed.id, 3, "out")

        store.calls.clear()
        result = session.delete_warehouse(second.id)

        assert result.ok
        assert result.data["products_removed"] == 1
        assert result.data["transactions_removed"] == 2
        assert store.writes() == [
            ("delete_where", TRANSACTIONS),
            ("delete_where", PRODUCTS),
            ("delete", WAREHOUSES),
        ]
        assert store.select(PRODUCTS, {"warehouse_id": second.id}) == []
        assert store.select(TRANSACTIONS, {"warehouse_id": second.id}) == []
        assert session.active_warehouse.id == default.id
        assert [p.id for p in session.products] == [kept.id]

    def test_partial_cascade_reported(self, session, store):
        second = session.create_warehouse("Second").data
        store.fail("delete_where", PRODUCTS)
        result = session.delete_warehouse(second.id)
        assert result.status == ResultStatus.PARTIAL
        assert store.get(WAREHOUSES, second.id) is not None

    def test_rejected_when_warehouses_disabled(self, clock, ids):
        store = FlakyStore(missing_relations={WAREHOUSES})
        session = InventorySession(store, TENANT, clock=clock, id_factory=ids).start()
        assert session.delete_warehouse("any").status == ResultStatus.REJECTED


class TestOperationGuards:
    """Meşgul bayrağı ve yapılandırma kontrolü."""

    def test_busy_engine_rejects(self, session, store):
        product = _create(session, 10)
        session.engine._busy = True
        result = session.adjust_stock(product.id, 1, "in")
        assert result.status == ResultStatus.REJECTED
        assert result.error == BUSY_MESSAGE
        assert _stored_product(store, product.id).quantity == 10

    def test_busy_flag_released_after_failure(self, session, store):
        product = _create(session, 10)
        store.fail("insert", TRANSACTIONS)
        session.adjust_stock(product.id, 1, "in")
        assert session.busy is False

    def test_unconfigured_store_short_circuits(self):
        store = DynamoLedgerStore(Settings(region="your-region"))
        scope = WarehouseScopeResolver(store, TENANT)
        engine = StockMutationEngine(store, scope)
        result = engine.create_product("Gel", initial_quantity=1)
        assert result.status == ResultStatus.REJECTED
        assert "not configured" in result.error


class TestQuantityRules:
    """Gösterilen sonuç ile deftere yazılan miktar ayrımı."""

    def test_displayed_quantity_uses_raw_amount(self):
        assert resulting_quantity(10, 15, TransactionType.OUT) == 0
        assert resulting_quantity(10, 4, TransactionType.OUT) == 6
        assert resulting_quantity(10, 4, TransactionType.IN) == 14

    def test_effective_amount_is_clamped(self):
        assert effective_amount(10, 15, TransactionType.OUT) == 10
        assert effective_amount(10, 15, TransactionType.IN) == 15
