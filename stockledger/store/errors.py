"""Depo erişim katmanının hata türleri.

Sağlayıcıya özgü hata kodları yalnızca burada sınıflandırılır; üst
katmanlar sadece StoreErrorKind üzerinden karar verir.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
)


class StoreErrorKind(str, Enum):
    NOT_CONFIGURED = "not_configured"
    RELATION_MISSING = "relation_missing"
    PERMISSION_DENIED = "permission_denied"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


_KIND_MESSAGES: dict[StoreErrorKind, str] = {
    StoreErrorKind.NOT_CONFIGURED: "storage is not configured, check the environment settings",
    StoreErrorKind.RELATION_MISSING: "storage table does not exist, run the table setup script",
    StoreErrorKind.PERMISSION_DENIED: "permission denied, check the access policy",
    StoreErrorKind.CONFLICT: "record already exists",
    StoreErrorKind.NOT_FOUND: "record not found",
    StoreErrorKind.UNAVAILABLE: "storage is unreachable, check the network and retry",
    StoreErrorKind.UNKNOWN: "storage error",
}

_RELATION_MISSING_CODES = {"ResourceNotFoundException"}
_PERMISSION_CODES = {
    "AccessDeniedException",
    "UnrecognizedClientException",
    "InvalidSignatureException",
    "ExpiredTokenException",
}
_CONFLICT_CODES = {"ConditionalCheckFailedException", "TransactionConflictException"}
_UNAVAILABLE_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "InternalServerError",
    "ServiceUnavailable",
    "RequestTimeout",
}


class StoreError(Exception):
    """Depo işlemi hatası (tür + okunabilir mesaj)."""

    def __init__(self, kind: StoreErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or _KIND_MESSAGES[kind]
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        return _KIND_MESSAGES[self.kind]


def classify_client_error(error: Exception) -> StoreErrorKind:
    """botocore hatasını StoreErrorKind'a eşler."""
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        if code in _RELATION_MISSING_CODES:
            return StoreErrorKind.RELATION_MISSING
        if code in _PERMISSION_CODES:
            return StoreErrorKind.PERMISSION_DENIED
        if code in _CONFLICT_CODES:
            return StoreErrorKind.CONFLICT
        if code in _UNAVAILABLE_CODES:
            return StoreErrorKind.UNAVAILABLE
        return StoreErrorKind.UNKNOWN
    if isinstance(error, (NoCredentialsError, PartialCredentialsError, NoRegionError)):
        return StoreErrorKind.NOT_CONFIGURED
    if isinstance(error, EndpointConnectionError):
        return StoreErrorKind.UNAVAILABLE
    if isinstance(error, BotoCoreError):
        # Zaman aşımı ve bağlantı kopmaları da buraya düşer
        return StoreErrorKind.UNAVAILABLE
    return StoreErrorKind.UNKNOWN


def to_store_error(error: Exception) -> StoreError:
    kind = classify_client_error(error)
    return StoreError(kind, f"{_KIND_MESSAGES[kind]}: {error}")
