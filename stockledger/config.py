"""Ortam değişkenlerinden okunan uygulama ayarları."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

BACKEND_DYNAMODB = "dynamodb"
BACKEND_MEMORY = "memory"

DEFAULT_REGION = "us-west-2"
DEFAULT_STATE_FILE = str(Path.home() / ".stockledger" / "state.json")

DEFAULT_WAREHOUSE_NAME = "Default warehouse"
DEFAULT_WAREHOUSE_DESCRIPTION = "Automatically created default warehouse"
DEFAULT_WAREHOUSE_COLOR = "#3B82F6"
INITIAL_STOCK_NOTE = "initial stock"

_PLACEHOLDER_MARKERS = ("your-", "placeholder")
_TRUE_VALUES = {"1", "true", "yes", "on"}


def _looks_like_placeholder(value: str) -> bool:
    lowered = value.lower()
    return any(marker in lowered for marker in _PLACEHOLDER_MARKERS)


@dataclass
class Settings:
    backend: str = BACKEND_DYNAMODB
    region: str = DEFAULT_REGION
    table_prefix: str = ""
    endpoint_url: Optional[str] = None
    state_file: str = DEFAULT_STATE_FILE
    tenant_id: Optional[str] = None
    strict_initial_stock: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Ayarları ortam değişkenlerinden okur (.env env_loader ile yüklenir)."""
        return cls(
            backend=os.environ.get("STOCKLEDGER_BACKEND", BACKEND_DYNAMODB).lower(),
            region=os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION),
            table_prefix=os.environ.get("STOCKLEDGER_TABLE_PREFIX", ""),
            endpoint_url=os.environ.get("STOCKLEDGER_ENDPOINT_URL") or None,
            state_file=os.environ.get("STOCKLEDGER_STATE_FILE", DEFAULT_STATE_FILE),
            tenant_id=os.environ.get("STOCKLEDGER_TENANT_ID") or None,
            strict_initial_stock=(
                os.environ.get("STOCKLEDGER_STRICT_INITIAL_STOCK", "").lower() in _TRUE_VALUES
            ),
            log_level=os.environ.get("STOCKLEDGER_LOG_LEVEL", "INFO").upper(),
        )

    def is_configured(self) -> bool:
        """Depo bağlantısı için gerekli değerler gerçek mi kontrol eder."""
        if self.backend == BACKEND_MEMORY:
            return True
        if self.backend != BACKEND_DYNAMODB:
            return False
        if not self.region or _looks_like_placeholder(self.region):
            return False
        if self.endpoint_url and _looks_like_placeholder(self.endpoint_url):
            return False
        if self.table_prefix and _looks_like_placeholder(self.table_prefix):
            return False
        return True

    def table_name(self, relation: str) -> str:
        # warehouses -> <prefix>Warehouses
        return f"{self.table_prefix}{relation.capitalize()}"
