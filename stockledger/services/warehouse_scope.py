"""Warehouse Scope Resolver - Aktif depo kapsamını belirler.

- Kiracının (tenant) hangi depoya bakmakta olduğunu çözümler
- İlk erişimde varsayılan depoyu oluşturur (sistemdeki tek örtük yazma)
- Seçimi kalıcı saklar; saklanan seçim yalnızca tavsiye niteliğindedir
- Depo tablosu yoksa tek örtük depo moduna geçer (warehouse_enabled=False)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from stockledger.config import (
    DEFAULT_WAREHOUSE_COLOR,
    DEFAULT_WAREHOUSE_DESCRIPTION,
    DEFAULT_WAREHOUSE_NAME,
)
from stockledger.models.inventory import Warehouse, utc_now
from stockledger.models.results import OperationResult
from stockledger.store.base import WAREHOUSES, LedgerStore
from stockledger.store.errors import StoreError, StoreErrorKind
from stockledger.store.selection import MemorySelectionStore

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = {"name", "description", "color"}


def order_warehouses(warehouses: list[Warehouse]) -> list[Warehouse]:
    """Varsayılan depo önce, sonra oluşturulma sırası."""
    return sorted(warehouses, key=lambda w: (not w.is_default, w.created_at))


def pick_active(warehouses: list[Warehouse], persisted_id: Optional[str]) -> Optional[Warehouse]:
    """Seçim sırası: saklanan seçim -> varsayılan depo -> ilk oluşturulan."""
    if not warehouses:
        return None
    if persisted_id:
        for w in warehouses:
            if w.id == persisted_id:
                return w
    for w in warehouses:
        if w.is_default:
            return w
    return min(warehouses, key=lambda w: w.created_at)


class WarehouseScopeResolver:
    """Kiracı için aktif depo kapsamını yöneten bileşen."""

    def __init__(
        self,
        store: LedgerStore,
        tenant_id: str,
        selection_store: Optional[object] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.store = store
        self.tenant_id = tenant_id
        self.selection = selection_store or MemorySelectionStore()
        self._clock = clock or utc_now
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

        self.warehouse_enabled = False
        self._active_id: Optional[str] = None

    # --- Yetenek tespiti ---

    def detect_capability(self) -> bool:
        """Depo ilişkisinin var ve erişilebilir olup olmadığını belirler.

        Hata fırlatmaz; erişilemeyen depo tablosu tek örtük depo modu demektir.
        """
        try:
            self.store.probe(WAREHOUSES)
        except StoreError as e:
            if e.kind == StoreErrorKind.RELATION_MISSING:
                logger.warning("Depo tablosu yok, depo özelliği devre dışı (tenant=%s)", self.tenant_id)
            else:
                logger.error("Depo tablosuna erişilemedi, depo özelliği devre dışı: %s", e)
            self.warehouse_enabled = False
            self._active_id = None
            return False

        self.warehouse_enabled = True
        return True

    # --- Okuma ---

    def fetch_warehouses(self) -> list[Warehouse]:
        """Kiracının depolarını okur; depo hatasını StoreError olarak yükseltir."""
        if not self.warehouse_enabled:
            return []
        rows = self.store.select(WAREHOUSES, {"tenant_id": self.tenant_id}, order_by="created_at")
        return order_warehouses([Warehouse.from_item(r) for r in rows])

    def list_warehouses(self) -> list[Warehouse]:
        try:
            return self.fetch_warehouses()
        except StoreError as e:
            logger.error("Depo listesi alınamadı: %s", e)
            return []

    # --- Varsayılan depo ---

    def ensure_warehouse_exists(self) -> Optional[Warehouse]:
        """Hiç depo yoksa varsayılan depoyu oluşturur (idempotent)."""
        if not self.warehouse_enabled:
            return None

        try:
            warehouses = self.fetch_warehouses()
        except StoreError as e:
            logger.error("Depo listesi alınamadı, varsayılan depo kontrolü atlandı: %s", e)
            return None

        if warehouses:
            return pick_active(warehouses, self.selection.load(self.tenant_id))

        warehouse = Warehouse(
            id=self._new_id(),
            tenant_id=self.tenant_id,
            name=DEFAULT_WAREHOUSE_NAME,
            description=DEFAULT_WAREHOUSE_DESCRIPTION,
            color=DEFAULT_WAREHOUSE_COLOR,
            is_default=True,
            created_at=self._clock(),
        )
        try:
            self.store.insert(WAREHOUSES, warehouse.to_item())
        except StoreError as e:
            logger.error("Varsayılan depo oluşturulamadı: %s", e)
            return None

        logger.info("Varsayılan depo oluşturuldu: %s (tenant=%s)", warehouse.id, self.tenant_id)
        self._remember(warehouse.id)
        return warehouse

    # --- Aktif depo ---

    def resolve_active_warehouse(
        self, warehouses: Optional[list[Warehouse]] = None
    ) -> Optional[Warehouse]:
        """Aktif depoyu çözümler ve seçimi kalıcı hale getirir."""
        if not self.warehouse_enabled:
            return None
        if warehouses is None:
            warehouses = self.list_warehouses()

        persisted = self._active_id or self.selection.load(self.tenant_id)
        active = pick_active(warehouses, persisted)
        if active is None:
            self._active_id = None
            return None

        if active.id != persisted:
            logger.info("Aktif depo %s olarak ayarlandı", active.id)
        self._remember(active.id)
        return active

    def active_warehouse_id(self) -> Optional[str]:
        """Sorgu kapsamı için depo kimliği; depo modu kapalıyken None."""
        if not self.warehouse_enabled:
            return None
        if self._active_id is None:
            active = self.resolve_active_warehouse()
            return active.id if active else None
        return self._active_id

    def set_active_warehouse(self, warehouse_id: str) -> bool:
        if not self.warehouse_enabled:
            return False
        if not any(w.id == warehouse_id for w in self.list_warehouses()):
            logger.warning("Bilinmeyen depo seçilemez: %s", warehouse_id)
            return False
        self._remember(warehouse_id)
        return True

    def reassign_after_delete(self, deleted_id: str) -> Optional[Warehouse]:
        """Silinen depo aktifse kapsamı varsayılan depoya taşır."""
        if self._active_id != deleted_id:
            return None
        self._active_id = None
        warehouses = [w for w in self.list_warehouses() if w.id != deleted_id]
        fallback = pick_active(warehouses, None)
        if fallback is not None:
            self._remember(fallback.id)
        return fallback

    def _remember(self, warehouse_id: str) -> None:
        self._active_id = warehouse_id
        self.selection.save(self.tenant_id, warehouse_id)

    # --- Depo yönetimi ---

    def create_warehouse(
        self,
        name: str,
        description: str = "",
        color: str = "",
        is_default: bool = False,
    ) -> OperationResult:
        name = (name or "").strip()
        if not name:
            return OperationResult.rejected("warehouse name is required")
        if not self.store.is_configured:
            return OperationResult.rejected(StoreError(StoreErrorKind.NOT_CONFIGURED).message)

        try:
            existing = self.store.select(WAREHOUSES, {"tenant_id": self.tenant_id})
        except StoreError as e:
            return OperationResult.failed(self._warehouse_error_message(e))

        # Kiracı başına tam olarak bir varsayılan depo
        if not existing:
            is_default = True
        elif is_default and any(r.get("is_default") for r in existing):
            return OperationResult.rejected("tenant already has a default warehouse")

        warehouse = Warehouse(
            id=self._new_id(),
            tenant_id=self.tenant_id,
            name=name,
            description=description or "",
            color=color or DEFAULT_WAREHOUSE_COLOR,
            is_default=is_default,
            created_at=self._clock(),
        )
        try:
            self.store.insert(WAREHOUSES, warehouse.to_item())
        except StoreError as e:
            logger.error("Depo oluşturulamadı: %s", e)
            return OperationResult.failed(self._warehouse_error_message(e))

        logger.info("Depo oluşturuldu: %s - %s", warehouse.id, warehouse.name)
        if not existing:
            # Tablo yeni oluşturulduysa özellik de artık açıktır
            self.warehouse_enabled = True
            self._remember(warehouse.id)
        return OperationResult.success(warehouse)

    def update_warehouse(self, warehouse_id: str, updates: dict) -> bool:
        if not self.warehouse_enabled:
            return False
        fields = {k: v for k, v in updates.items() if k in _EDITABLE_FIELDS}
        if not fields:
            return False
        if "name" in fields and not str(fields["name"]).strip():
            return False
        try:
            self.store.update(WAREHOUSES, warehouse_id, fields)
        except StoreError as e:
            logger.error("Depo güncellenemedi [%s]: %s", warehouse_id, e)
            return False
        return True

    @staticmethod
    def _warehouse_error_message(error: StoreError) -> str:
        if error.kind == StoreErrorKind.RELATION_MISSING:
            return "warehouse table does not exist, run the table setup script"
        if error.kind == StoreErrorKind.PERMISSION_DENIED:
            return "permission denied, check the warehouse table access policy"
        return error.message
