"""InventorySession - tek kiracılı uygulama durumu.

Önbellekler (depolar, kapsamlı ürünler, kapsamlı hareketler, tüm geçmiş)
yalnızca buradaki giriş noktalarıyla değişir. Her sorguya kiracı ve depo
kapsamı açıkça verilir.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from stockledger import analytics
from stockledger.config import BACKEND_MEMORY, Settings
from stockledger.export import CsvExport, export_products, export_transactions, PERIOD_DAY
from stockledger.models.inventory import (
    ConsumptionRank,
    DailyMovement,
    MovementChange,
    OpeningStock,
    Product,
    ProductPerformance,
    Transaction,
    TransactionType,
    TrendResult,
    TurnoverRate,
    Warehouse,
    utc_now,
)
from stockledger.models.results import OperationResult, ResultStatus
from stockledger.services.ledger_queries import LedgerQueries
from stockledger.services.stock_mutations import StockMutationEngine
from stockledger.services.warehouse_scope import WarehouseScopeResolver
from stockledger.store import JsonSelectionStore, MemorySelectionStore, create_store
from stockledger.store.base import PRODUCTS, LedgerStore
from stockledger.store.errors import StoreError, StoreErrorKind

logger = logging.getLogger(__name__)

LOCAL_TENANT = "local"


class InventorySession:
    """Bir kiracının oturumu: önbellekler + motor + sorgu katmanı."""

    def __init__(
        self,
        store: LedgerStore,
        tenant_id: str,
        selection_store: Optional[Any] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        strict_initial_stock: bool = False,
    ):
        if not tenant_id:
            raise ValueError("tenant_id is required")
        self.store = store
        self.tenant_id = tenant_id
        self._clock = clock or utc_now

        self.scope = WarehouseScopeResolver(
            store, tenant_id, selection_store=selection_store, clock=clock, id_factory=id_factory
        )
        self.engine = StockMutationEngine(
            store, self.scope, clock=clock, id_factory=id_factory,
            strict_initial_stock=strict_initial_stock,
        )
        self.queries = LedgerQueries(store)

        self.warehouses: list[Warehouse] = []
        self.active_warehouse: Optional[Warehouse] = None
        self.products: list[Product] = []
        self.transactions: list[Transaction] = []
        self.all_transactions: list[Transaction] = []
        self.last_error: Optional[str] = None

    @classmethod
    def from_settings(
        cls, settings: Settings, dynamodb_resource: Optional[Any] = None, **kwargs: Any
    ) -> "InventorySession":
        store = create_store(settings, dynamodb_resource=dynamodb_resource)
        if settings.backend == BACKEND_MEMORY:
            selection = MemorySelectionStore()
        else:
            selection = JsonSelectionStore(settings.state_file)
        return cls(
            store,
            settings.tenant_id or LOCAL_TENANT,
            selection_store=selection,
            strict_initial_stock=settings.strict_initial_stock,
            **kwargs,
        )

    # --- Durum ---

    @property
    def warehouse_enabled(self) -> bool:
        return self.scope.warehouse_enabled

    @property
    def busy(self) -> bool:
        return self.engine.busy

    @property
    def warehouse_id(self) -> Optional[str]:
        if not self.warehouse_enabled or self.active_warehouse is None:
            return None
        return self.active_warehouse.id

    def now(self) -> datetime:
        return self._clock()

    def start(self) -> "InventorySession":
        """Oturum açılışı: yetenek tespiti, varsayılan depo, kapsam, ilk yükleme."""
        if not self.store.is_configured:
            self.last_error = StoreError(StoreErrorKind.NOT_CONFIGURED).message
            logger.error("Depo yapılandırılmamış, oturum boş başlatıldı")
            return self

        if self.scope.detect_capability():
            self.scope.ensure_warehouse_exists()
        self.refresh()
        logger.info(
            "Oturum başladı: tenant=%s, depo=%s, %d ürün",
            self.tenant_id, self.warehouse_id, len(self.products),
        )
        return self

    def check_connection(self) -> dict:
        if not self.store.is_configured:
            return {"status": "error", "reason": StoreError(StoreErrorKind.NOT_CONFIGURED).message}
        try:
            self.store.probe(PRODUCTS)
        except StoreError as e:
            logger.error("Bağlantı kontrolü başarısız: %s", e)
            return {"status": "error", "reason": e.user_message}
        return {"status": "connected", "reason": None}

    # --- Önbellek yenileme ---

    def refresh(self) -> bool:
        """Tüm önbellekleri yeniden yükler; okuma hatası önbelleği değiştirmez."""
        self.refresh_warehouses()
        ok = self.refresh_products()
        ok = self.refresh_transactions() and ok
        return ok

    def refresh_warehouses(self) -> None:
        self.warehouses = self.scope.list_warehouses()
        self.active_warehouse = self.scope.resolve_active_warehouse(self.warehouses)

    def refresh_products(self) -> bool:
        try:
            self.products = self.queries.list_products(self.tenant_id, self.warehouse_id)
        except StoreError as e:
            logger.error("Ürünler yüklenemedi: %s", e)
            self.last_error = e.message
            return False
        return True

    def refresh_transactions(self) -> bool:
        try:
            self.transactions = self.queries.list_transactions(self.tenant_id, self.warehouse_id)
            self.all_transactions = self.queries.list_all_transactions(self.tenant_id)
        except StoreError as e:
            logger.error("Hareketler yüklenemedi: %s", e)
            self.last_error = e.message
            return False
        return True

    def _after_mutation(self, result: OperationResult) -> OperationResult:
        if result.error:
            self.last_error = result.error
        # Reddedilen işlem hiçbir şey yazmadı
        if result.status != ResultStatus.REJECTED:
            self.refresh()
        return result

    # --- Depo işlemleri ---

    def switch_warehouse(self, warehouse_id: str) -> bool:
        if not self.scope.set_active_warehouse(warehouse_id):
            return False
        self.refresh()
        return True

    def create_warehouse(self, name: str, description: str = "", color: str = "",
                         is_default: bool = False) -> OperationResult:
        return self._after_mutation(
            self.scope.create_warehouse(name, description, color, is_default)
        )

    def update_warehouse(self, warehouse_id: str, updates: dict) -> bool:
        updated = self.scope.update_warehouse(warehouse_id, updates)
        if updated:
            self.refresh_warehouses()
        return updated

    def delete_warehouse(self, warehouse_id: str) -> OperationResult:
        return self._after_mutation(self.engine.delete_warehouse(warehouse_id))

    # --- Stok işlemleri ---

    def create_product(self, name: str, **kwargs: Any) -> OperationResult:
        return self._after_mutation(self.engine.create_product(name, **kwargs))

    def adjust_stock(self, product_id: str, amount: Any, direction: Any, notes: str = "",
                     backdated_at: Optional[Any] = None) -> OperationResult:
        return self._after_mutation(
            self.engine.adjust_stock(product_id, amount, direction, notes, backdated_at)
        )

    def delete_product(self, product_id: str) -> OperationResult:
        return self._after_mutation(self.engine.delete_product(product_id))

    def delete_transaction(self, transaction_id: str) -> OperationResult:
        return self._after_mutation(self.engine.delete_transaction(transaction_id))

    # --- Okuma ve analiz (önbellek üzerinden) ---

    def get_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def low_stock_products(self) -> list[Product]:
        return [p for p in self.products if p.is_low_stock]

    def totals(self) -> dict:
        total_in, total_out = analytics.movement_totals(self.transactions)
        return {
            "total_in": total_in,
            "total_out": total_out,
            "total_stock": analytics.total_stock(self.products),
        }

    def month_over_month(self) -> dict[str, MovementChange]:
        now = self.now()
        return {
            "in": analytics.month_over_month(self.transactions, TransactionType.IN, now),
            "out": analytics.month_over_month(self.transactions, TransactionType.OUT, now),
        }

    def opening_stock(self, month: Optional[datetime] = None) -> list[OpeningStock]:
        month_begin = analytics.month_start(month or self.now())
        return analytics.opening_stock(self.products, self.all_transactions, month_begin)

    def consumption_trend(self, product_id: str) -> TrendResult:
        return analytics.consumption_trend(self.all_transactions, product_id, self.now())

    def turnover_rate(self, product_id: str) -> Optional[TurnoverRate]:
        product = self.get_product(product_id)
        if product is None:
            return None
        return analytics.turnover_rate(product, self.all_transactions, self.now())

    def top_consumption(self, month: Optional[datetime] = None, n: int = 5) -> list[ConsumptionRank]:
        return analytics.top_consumption(self.transactions, self.products, month or self.now(), n)

    def daily_movements(self, product_id: str, month: Optional[datetime] = None) -> list[DailyMovement]:
        now = self.now()
        return analytics.daily_movements(self.all_transactions, product_id, month or now, now)

    def product_performance(self, search: str = "") -> list[ProductPerformance]:
        return analytics.product_performance(
            self.products, self.all_transactions, self.now(), search
        )

    def reconcile(self) -> dict:
        """Kapsamdaki ürünleri tüm defter satırlarıyla karşılaştırır.

        Depo kimliği olmayan (depo modu kapalıyken yazılmış) hareketler de
        ürünlerine göre dahil edilir; kapsamdaki yetim hareketler raporlanır.
        """
        product_ids = {p.id for p in self.products}
        scoped_ids = {t.id for t in self.transactions}
        ledger = [
            t for t in self.all_transactions
            if t.product_id in product_ids or t.id in scoped_ids
        ]
        return analytics.reconcile_ledger(self.products, ledger, self.now())

    # --- Dışa aktarma ---

    def export_transactions(
        self,
        when: Optional[datetime] = None,
        period: str = PERIOD_DAY,
        type_filter: Optional[TransactionType] = None,
    ) -> CsvExport:
        return export_transactions(self.transactions, when or self.now(), period, type_filter)

    def export_products(self) -> CsvExport:
        return export_products(self.products, self.now())
