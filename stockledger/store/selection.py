"""Aktif depo seçiminin kalıcı saklanması.

Seçim yalnızca tavsiye niteliğindedir: okunan kimlik artık yoksa
çözümleyici varsayılan depoya döner.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class MemorySelectionStore:
    def __init__(self) -> None:
        self._selected: dict[str, str] = {}

    def load(self, tenant_id: str) -> Optional[str]:
        return self._selected.get(tenant_id)

    def save(self, tenant_id: str, warehouse_id: str) -> None:
        self._selected[tenant_id] = warehouse_id


class JsonSelectionStore:
    """Seçimi {tenant_id: warehouse_id} biçiminde bir JSON dosyasında tutar."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def _read(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Depo seçimi okunamadı (%s): %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def load(self, tenant_id: str) -> Optional[str]:
        value = self._read().get(tenant_id)
        return value if isinstance(value, str) and value else None

    def save(self, tenant_id: str, warehouse_id: str) -> None:
        data = self._read()
        data[tenant_id] = warehouse_id
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.warning("Depo seçimi kaydedilemedi (%s): %s", self.path, e)
