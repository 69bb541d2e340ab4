"""Stock Mutation Engine - Ürün miktarı ile hareket defterini tutarlı tutar.

- Ürün oluşturma (başlangıç stoğu sentetik "in" hareketi olarak yazılır)
- Stok girişi / çıkışı (çıkış mevcut stokla sınırlandırılır)
- Hareket silme (miktar, hareket hiç olmamış gibi yeniden hesaplanır)
- Ürün ve depo silme (önce bağımlı kayıtlar silinir)

Çok adımlı işlemlerde ilk yazma miktardır; ikinci yazma başarısız
olursa miktar eski değerine geri yazılır. Geri yazma da başarısız
olursa sonuç INCONSISTENT olur ve elle mutabakat gerekir.
"""

from __future__ import annotations

import functools
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Optional

from stockledger.config import INITIAL_STOCK_NOTE
from stockledger.models.inventory import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    Product,
    StockAdjustment,
    Transaction,
    TransactionType,
    format_timestamp,
    parse_timestamp,
    utc_now,
)
from stockledger.models.results import OperationResult
from stockledger.services.warehouse_scope import WarehouseScopeResolver
from stockledger.store.base import PRODUCTS, TRANSACTIONS, WAREHOUSES, LedgerStore
from stockledger.store.errors import StoreError, StoreErrorKind

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "another stock operation is in progress"
NO_ACTIVE_WAREHOUSE_MESSAGE = "no active warehouse could be loaded, refresh and retry"


class ValidationError(Exception):
    """Girdi validasyon hatası; depoya hiçbir şey yazılmadan reddedilir."""
    pass


def stock_operation(func: Callable[..., OperationResult]) -> Callable[..., OperationResult]:
    """Motor işlemlerini sıraya sokar ve ön kontrolleri uygular.

    - Devam eden bir işlem varsa yenisi başlamaz (meşgul bayrağı)
    - Depo yapılandırılmamışsa hiçbir yazma denenmez
    - ValidationError REJECTED sonucuna çevrilir
    """

    @functools.wraps(func)
    def wrapper(self: "StockMutationEngine", *args: Any, **kwargs: Any) -> OperationResult:
        if self._busy:
            logger.warning("%s reddedildi: başka bir stok işlemi sürüyor", func.__name__)
            return OperationResult.rejected(BUSY_MESSAGE)
        if not self.store.is_configured:
            return OperationResult.rejected(StoreError(StoreErrorKind.NOT_CONFIGURED).message)

        self._busy = True
        try:
            return func(self, *args, **kwargs)
        except ValidationError as e:
            logger.warning("%s reddedildi: %s", func.__name__, e)
            return OperationResult.rejected(str(e))
        finally:
            self._busy = False

    return wrapper


# --- Girdi dönüşümleri ---


def _parse_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    raise ValidationError(f"{field_name} must be a whole number")


def _parse_direction(direction: Any) -> TransactionType:
    try:
        return TransactionType(direction)
    except ValueError:
        raise ValidationError("direction must be 'in' or 'out'") from None


def _parse_when(value: Optional[Any]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        raise ValidationError(f"invalid timestamp: {value}") from None


def resulting_quantity(current: int, amount: int, direction: TransactionType) -> int:
    """Onay öncesi gösterilen sonuç miktarı (ham miktar, alt sınır 0)."""
    if direction == TransactionType.IN:
        return current + amount
    return max(0, current - amount)


def effective_amount(current: int, amount: int, direction: TransactionType) -> int:
    """Deftere yazılacak miktar; çıkış mevcut stoğu aşamaz."""
    if direction == TransactionType.IN:
        return amount
    return min(amount, current)


class StockMutationEngine:
    """Ürün miktarını değiştiren tüm işlemlerin tek giriş noktası."""

    def __init__(
        self,
        store: LedgerStore,
        scope: WarehouseScopeResolver,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        strict_initial_stock: bool = False,
    ):
        self.store = store
        self.scope = scope
        self.tenant_id = scope.tenant_id
        self.strict_initial_stock = strict_initial_stock
        self._clock = clock or utc_now
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def _owned(self, row: Optional[dict]) -> bool:
        return row is not None and row.get("tenant_id") == self.tenant_id

    # --- Ürün oluşturma ---

    @stock_operation
    def create_product(
        self,
        name: str,
        brand: str = "",
        variant: str = "",
        initial_quantity: Any = 0,
        notes: str = "",
        backdated_at: Optional[Any] = None,
        low_stock_threshold: Any = DEFAULT_LOW_STOCK_THRESHOLD,
        image_url: str = "",
    ) -> OperationResult:
        """Ürünü yazar; başlangıç miktarı varsa sentetik giriş hareketi ekler.

        Hareket yazılamazsa varsayılan davranış ürünü korumaktır (PARTIAL).
        strict_initial_stock açıkken ürün silinir (ROLLED_BACK).
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("product name is required")
        quantity = _parse_int(initial_quantity, "initial quantity")
        if quantity < 0:
            raise ValidationError("initial quantity cannot be negative")
        threshold = _parse_int(low_stock_threshold, "low stock threshold")
        if threshold < 0:
            raise ValidationError("low stock threshold cannot be negative")
        when = _parse_when(backdated_at)

        warehouse_id = self.scope.active_warehouse_id()
        # Depo modu açıkken depo kimliksiz ürün hiçbir kapsamda görünmez
        if self.scope.warehouse_enabled and warehouse_id is None:
            logger.error("Ürün oluşturulamadı [%s]: aktif depo çözümlenemedi", name)
            return OperationResult.failed(NO_ACTIVE_WAREHOUSE_MESSAGE)

        now = self._clock()
        product = Product(
            id=self._new_id(),
            tenant_id=self.tenant_id,
            name=name,
            warehouse_id=warehouse_id,
            brand=(brand or "").strip(),
            variant=(variant or "").strip(),
            quantity=quantity,
            image_url=image_url or "",
            low_stock_threshold=threshold,
            notes=notes or "",
            created_at=now,
            updated_at=now,
        )

        try:
            self.store.insert(PRODUCTS, product.to_item())
        except StoreError as e:
            logger.error("Ürün oluşturulamadı [%s]: %s", name, e)
            return OperationResult.failed(e.message)

        if quantity == 0:
            logger.info("Ürün oluşturuldu: %s (%s)", product.id, name)
            return OperationResult.success(product)

        transaction = Transaction(
            id=self._new_id(),
            tenant_id=self.tenant_id,
            product_id=product.id,
            product_name=product.name,
            brand=product.brand,
            type=TransactionType.IN,
            amount=quantity,
            warehouse_id=product.warehouse_id,
            notes=INITIAL_STOCK_NOTE,
            created_at=when or now,
        )
        try:
            self.store.insert(TRANSACTIONS, transaction.to_item())
        except StoreError as e:
            if not self.strict_initial_stock:
                logger.warning(
                    "Ürün %s oluşturuldu ama başlangıç stok hareketi yazılamadı: %s", product.id, e
                )
                return OperationResult.partial(
                    product,
                    f"product created but the initial stock entry could not be recorded: {e.message}",
                )
            return self._undo_product_insert(product, e)

        logger.info("Ürün oluşturuldu: %s (%s), başlangıç stoğu %d", product.id, name, quantity)
        return OperationResult.success(product)

    def _undo_product_insert(self, product: Product, cause: StoreError) -> OperationResult:
        try:
            self.store.delete(PRODUCTS, product.id)
        except StoreError as e:
            logger.critical(
                "Ürün %s geri alınamadı, elle mutabakat gerekli: %s (ilk hata: %s)",
                product.id, e, cause,
            )
            return OperationResult.inconsistent(
                f"initial stock entry failed and the product could not be removed: {e.message}"
            )
        logger.warning("Başlangıç stok hareketi yazılamadı, ürün %s geri alındı: %s", product.id, cause)
        return OperationResult.rolled_back(
            f"initial stock entry could not be recorded, product was not created: {cause.message}"
        )

    # --- Stok girişi / çıkışı ---

    @stock_operation
    def adjust_stock(
        self,
        product_id: str,
        amount: Any,
        direction: Any,
        notes: str = "",
        backdated_at: Optional[Any] = None,
    ) -> OperationResult:
        """Miktarı yazar, sonra hareketi ekler.

        Sıra zorunludur: hareket yazılamazsa miktar eski değerine döner.
        """
        kind = _parse_direction(direction)
        requested = _parse_int(amount, "amount")
        if requested <= 0:
            raise ValidationError("amount must be greater than zero")
        when = _parse_when(backdated_at)

        try:
            row = self.store.get(PRODUCTS, product_id)
        except StoreError as e:
            return OperationResult.failed(e.message)
        if not self._owned(row):
            return OperationResult.rejected("product not found")

        product = Product.from_item(row)
        previous = product.quantity
        effective = effective_amount(previous, requested, kind)
        if effective <= 0:
            return OperationResult.rejected("no stock available to withdraw")
        new_quantity = resulting_quantity(previous, requested, kind)

        now = self._clock()
        try:
            self.store.update(
                PRODUCTS, product.id,
                {"quantity": new_quantity, "updated_at": format_timestamp(now)},
            )
        except StoreError as e:
            logger.error("Stok miktarı yazılamadı [%s]: %s", product.id, e)
            return OperationResult.failed(e.message)

        transaction = Transaction(
            id=self._new_id(),
            tenant_id=self.tenant_id,
            product_id=product.id,
            product_name=product.name,
            brand=product.brand,
            type=kind,
            amount=effective,
            warehouse_id=product.warehouse_id,
            notes=notes or "",
            created_at=when or now,
        )
        try:
            self.store.insert(TRANSACTIONS, transaction.to_item())
        except StoreError as e:
            return self._restore_quantity(product, previous, e, "stock movement could not be recorded")

        if effective < requested:
            logger.info(
                "Çıkış %d yerine mevcut stok kadar (%d) kaydedildi: %s",
                requested, effective, product.id,
            )
        logger.info(
            "Stok %s: %s %d -> %d", kind.value, product.id, previous, new_quantity
        )
        product.quantity = new_quantity
        product.updated_at = now
        return OperationResult.success(
            StockAdjustment(
                product=product,
                transaction=transaction,
                requested_amount=requested,
                effective_amount=effective,
            )
        )

    def _restore_quantity(
        self, product: Product, previous: int, cause: StoreError, what: str
    ) -> OperationResult:
        """Telafi adımı: ürün miktarını işlem öncesi değerine geri yazar."""
        try:
            self.store.update(
                PRODUCTS, product.id,
                {"quantity": previous, "updated_at": format_timestamp(product.updated_at)},
            )
        except StoreError as e:
            logger.critical(
                "Ürün %s miktarı %d değerine geri yazılamadı, elle mutabakat gerekli: %s",
                product.id, previous, e,
            )
            return OperationResult.inconsistent(f"{what}: {cause.message}")
        logger.warning("%s, ürün %s miktarı geri alındı: %s", what, product.id, cause)
        return OperationResult.rolled_back(f"{what}, quantity restored: {cause.message}")

    # --- Hareket silme ---

    @stock_operation
    def delete_transaction(self, transaction_id: str) -> OperationResult:
        """Hareketi siler ve etkisini ürün miktarından geri çeker (alt sınır 0)."""
        try:
            row = self.store.get(TRANSACTIONS, transaction_id)
        except StoreError as e:
            return OperationResult.failed(e.message)
        if not self._owned(row):
            return OperationResult.rejected("transaction not found")
        transaction = Transaction.from_item(row)

        try:
            product_row = self.store.get(PRODUCTS, transaction.product_id)
        except StoreError as e:
            return OperationResult.failed(e.message)

        if not self._owned(product_row):
            # Sahipsiz hareket: düzeltilecek miktar yok
            try:
                self.store.delete(TRANSACTIONS, transaction.id)
            except StoreError as e:
                return OperationResult.failed(e.message)
            return OperationResult.success(
                transaction, warnings=["owning product no longer exists"]
            )

        product = Product.from_item(product_row)
        previous = product.quantity
        new_quantity = max(0, previous - transaction.signed_amount)
        now = self._clock()

        try:
            self.store.update(
                PRODUCTS, product.id,
                {"quantity": new_quantity, "updated_at": format_timestamp(now)},
            )
        except StoreError as e:
            logger.error("Hareket silinemedi, miktar yazılamadı [%s]: %s", transaction.id, e)
            return OperationResult.failed(e.message)

        try:
            self.store.delete(TRANSACTIONS, transaction.id)
        except StoreError as e:
            return self._restore_quantity(product, previous, e, "transaction could not be deleted")

        logger.info(
            "Hareket silindi: %s (%s %d), ürün %s %d -> %d",
            transaction.id, transaction.type.value, transaction.amount,
            product.id, previous, new_quantity,
        )
        return OperationResult.success(transaction)

    # --- Ürün silme ---

    @stock_operation
    def delete_product(self, product_id: str) -> OperationResult:
        """Önce ürünün hareketlerini, sonra ürünü siler."""
        try:
            row = self.store.get(PRODUCTS, product_id)
        except StoreError as e:
            return OperationResult.failed(e.message)
        if not self._owned(row):
            return OperationResult.rejected("product not found")

        try:
            removed = self.store.delete_where(
                TRANSACTIONS, {"tenant_id": self.tenant_id, "product_id": product_id}
            )
        except StoreError as e:
            logger.error("Ürün hareketleri silinemedi [%s]: %s", product_id, e)
            return OperationResult.partial(
                None,
                "some transactions of the product may already be removed",
                error=e.message,
            )

        try:
            self.store.delete(PRODUCTS, product_id)
        except StoreError as e:
            logger.error("Hareketleri silinen ürün silinemedi [%s]: %s", product_id, e)
            return OperationResult.partial(
                {"transactions_removed": removed},
                f"{removed} transactions removed but the product remains",
                error=e.message,
            )

        logger.info("Ürün silindi: %s (%d hareket)", product_id, removed)
        return OperationResult.success({"product_id": product_id, "transactions_removed": removed})

    # --- Depo silme ---

    @stock_operation
    def delete_warehouse(self, warehouse_id: str) -> OperationResult:
        """Hareketler -> ürünler -> depo sırasıyla siler.

        Varsayılan depo ve kiracının tek deposu silinemez.
        """
        if not self.scope.warehouse_enabled:
            return OperationResult.rejected("warehouses are not enabled")
        try:
            warehouses = self.scope.fetch_warehouses()
        except StoreError as e:
            return OperationResult.failed(e.message)

        target = next((w for w in warehouses if w.id == warehouse_id), None)
        if target is None:
            return OperationResult.rejected("warehouse not found")
        if target.is_default:
            return OperationResult.rejected("the default warehouse cannot be deleted")
        if len(warehouses) <= 1:
            return OperationResult.rejected("the only warehouse cannot be deleted")

        scope_filter = {"tenant_id": self.tenant_id, "warehouse_id": warehouse_id}
        removed = {"transactions_removed": 0, "products_removed": 0}
        steps = (
            ("transactions_removed", lambda: self.store.delete_where(TRANSACTIONS, scope_filter)),
            ("products_removed", lambda: self.store.delete_where(PRODUCTS, scope_filter)),
        )
        for key, step in steps:
            try:
                removed[key] = step()
            except StoreError as e:
                logger.error("Depo %s silme zinciri yarıda kaldı (%s): %s", warehouse_id, key, e)
                return OperationResult.partial(
                    dict(removed), "warehouse contents were partially removed", error=e.message
                )

        try:
            self.store.delete(WAREHOUSES, warehouse_id)
        except StoreError as e:
            logger.error("İçeriği silinen depo silinemedi [%s]: %s", warehouse_id, e)
            return OperationResult.partial(
                dict(removed), "warehouse contents removed but the warehouse remains", error=e.message
            )

        fallback = self.scope.reassign_after_delete(warehouse_id)
        logger.info(
            "Depo silindi: %s (%d ürün, %d hareket)",
            warehouse_id, removed["products_removed"], removed["transactions_removed"],
        )
        return OperationResult.success(
            {"warehouse": target, "active_warehouse": fallback, **removed}
        )
