"""Stok işlemlerinin sonuç modeli.

Motor işlemleri exception fırlatmaz; arayüz katmanı mesajı satır içinde
gösterebilsin diye her zaman bir OperationResult döner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

INCONSISTENCY_MESSAGE = "inconsistency: manual reconciliation required"


class ResultStatus(str, Enum):
    OK = "ok"
    # Hiçbir şey yazılmadı
    REJECTED = "rejected"
    FAILED = "failed"
    # Yazıldı, sonra geri alındı
    ROLLED_BACK = "rolled_back"
    # Yazıldı ve geri alınmadı
    PARTIAL = "partial"
    INCONSISTENT = "inconsistent"


@dataclass
class OperationResult:
    status: ResultStatus
    error: Optional[str] = None
    data: Any = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        # PARTIAL + error: zincir yarıda kaldı, işlem başarılı sayılmaz
        if self.status == ResultStatus.PARTIAL:
            return self.error is None
        return self.status == ResultStatus.OK

    @property
    def changed_nothing(self) -> bool:
        return self.status in (
            ResultStatus.REJECTED,
            ResultStatus.FAILED,
            ResultStatus.ROLLED_BACK,
        )

    @classmethod
    def success(cls, data: Any = None, warnings: Optional[list[str]] = None) -> "OperationResult":
        return cls(ResultStatus.OK, data=data, warnings=list(warnings or []))

    @classmethod
    def rejected(cls, error: str) -> "OperationResult":
        return cls(ResultStatus.REJECTED, error=error)

    @classmethod
    def failed(cls, error: str) -> "OperationResult":
        return cls(ResultStatus.FAILED, error=error)

    @classmethod
    def rolled_back(cls, error: str) -> "OperationResult":
        return cls(ResultStatus.ROLLED_BACK, error=error)

    @classmethod
    def partial(
        cls, data: Any, warning: str, error: Optional[str] = None
    ) -> "OperationResult":
        return cls(ResultStatus.PARTIAL, error=error, data=data, warnings=[warning])

    @classmethod
    def inconsistent(cls, error: str) -> "OperationResult":
        return cls(ResultStatus.INCONSISTENT, error=f"{error} ({INCONSISTENCY_MESSAGE})")
