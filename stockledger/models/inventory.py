"""Depo, ürün ve stok hareketi veri modelleri."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

DEFAULT_LOW_STOCK_THRESHOLD = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """ISO 8601 metnini (veya datetime'ı) UTC datetime'a çevirir.

    Saat dilimi bilgisi olmayan değerler UTC kabul edilir.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    # Sabit biçim: depoda metin sıralaması zaman sıralamasıyla aynı olmalı
    return parse_timestamp(value).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _native(value: Any) -> Any:
    """DynamoDB Decimal değerlerini int/float'a çevirir."""
    if isinstance(value, Decimal):
        return int(value) if value == int(value) else float(value)
    return value


class TransactionType(str, Enum):
    IN = "in"
    OUT = "out"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class TurnoverRate(str, Enum):
    HIGH = "High"
    MED = "Med"
    LOW = "Low"


@dataclass
class Warehouse:
    id: str
    tenant_id: str
    name: str
    description: str = ""
    color: str = "#3B82F6"
    is_default: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def to_item(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "is_default": self.is_default,
            "created_at": format_timestamp(self.created_at),
        }

    @classmethod
    def from_item(cls, item: dict) -> "Warehouse":
        return cls(
            id=item["id"],
            tenant_id=item["tenant_id"],
            name=item.get("name", ""),
            description=item.get("description") or "",
            color=item.get("color") or "#3B82F6",
            is_default=bool(item.get("is_default", False)),
            created_at=parse_timestamp(item["created_at"]),
        )


@dataclass
class Product:
    id: str
    tenant_id: str
    name: str
    warehouse_id: Optional[str] = None
    brand: str = ""
    variant: str = ""
    quantity: int = 0
    image_url: str = ""
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    notes: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold

    def to_item(self) -> dict:
        item = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "brand": self.brand,
            "variant": self.variant,
            "quantity": self.quantity,
            "image_url": self.image_url,
            "low_stock_threshold": self.low_stock_threshold,
            "notes": self.notes,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }
        # Depo özelliği kapalıyken alan hiç yazılmaz
        if self.warehouse_id is not None:
            item["warehouse_id"] = self.warehouse_id
        return item

    @classmethod
    def from_item(cls, item: dict) -> "Product":
        return cls(
            id=item["id"],
            tenant_id=item["tenant_id"],
            name=item.get("name", ""),
            warehouse_id=item.get("warehouse_id"),
            brand=item.get("brand") or "",
            variant=item.get("variant") or "",
            quantity=int(_native(item.get("quantity", 0))),
            image_url=item.get("image_url") or "",
            low_stock_threshold=int(
                _native(item.get("low_stock_threshold", DEFAULT_LOW_STOCK_THRESHOLD))
            ),
            notes=item.get("notes") or "",
            created_at=parse_timestamp(item["created_at"]),
            updated_at=parse_timestamp(item.get("updated_at") or item["created_at"]),
        )


@dataclass
class Transaction:
    """Değiştirilemez stok hareketi kaydı.

    Ürün adı ve markası yazma anında kopyalanır; ürün sonradan
    değişse bile kayıt ilk halini korur.
    """

    id: str
    tenant_id: str
    product_id: str
    product_name: str
    type: TransactionType
    amount: int
    warehouse_id: Optional[str] = None
    brand: str = ""
    notes: str = ""
    created_at: datetime = field(default_factory=utc_now)

    @property
    def signed_amount(self) -> int:
        return self.amount if self.type == TransactionType.IN else -self.amount

    def to_item(self) -> dict:
        item = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "brand": self.brand,
            "type": self.type.value,
            "amount": self.amount,
            "notes": self.notes,
            "created_at": format_timestamp(self.created_at),
        }
        if self.warehouse_id is not None:
            item["warehouse_id"] = self.warehouse_id
        return item

    @classmethod
    def from_item(cls, item: dict) -> "Transaction":
        return cls(
            id=item["id"],
            tenant_id=item["tenant_id"],
            product_id=item["product_id"],
            product_name=item.get("product_name", ""),
            type=TransactionType(item["type"]),
            amount=int(_native(item["amount"])),
            warehouse_id=item.get("warehouse_id"),
            brand=item.get("brand") or "",
            notes=item.get("notes") or "",
            created_at=parse_timestamp(item["created_at"]),
        )


# --- Analiz çıktıları ---


@dataclass
class OpeningStock:
    product_id: str
    name: str
    opening_qty: int
    current_qty: int
    net_change: int
    brand: str = ""
    variant: str = ""


@dataclass
class TrendResult:
    trend: Trend
    percent_change: int


@dataclass
class ConsumptionRank:
    product_id: str
    name: str
    brand: str
    usage: int
    percentage: int
    image_url: str = ""


@dataclass
class DailyMovement:
    day: int
    label: str
    stock_in: Optional[int]
    stock_out: Optional[int]


@dataclass
class ProductPerformance:
    product_id: str
    name: str
    brand: str
    variant: str
    consumed: int
    in_stock: int
    trend: Trend
    trend_value: int
    turnover_rate: TurnoverRate


@dataclass
class MovementChange:
    """Bu ay / geçen ay hareket toplamı karşılaştırması."""

    current: int
    previous: int
    percent_change: Optional[int]
    new_activity: bool = False


@dataclass
class StockAdjustment:
    product: Product
    transaction: Transaction
    requested_amount: int
    effective_amount: int
