from __future__ import annotations

from typing import Any, Optional

from .enums import ErrorReason


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind = "DOMAIN_ERROR"

    def __init__(self, message: str, *, reason: Optional[ErrorReason] = None, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.kind,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "VALIDATION_ERROR"


class ConflictError(DomainError):
    """Raised when an operation would break a temporal invariant."""

    kind = "CONFLICT"


class BlockOverlapError(ConflictError):
    """Raised when a candidate interval intersects an existing block."""

    def __init__(self, message: str, *, conflicting: Any, details: Optional[dict[str, Any]] = None):
        super().__init__(message, reason=ErrorReason.BLOCK_OVERLAP, details=details)
        self.conflicting = conflicting


class NotFoundError(DomainError):
    """Raised when a record is missing or not owned by the caller."""

    kind = "NOT_FOUND"


class StorageError(DomainError):
    """Raised when the persistence layer fails; never retried here."""

    kind = "STORAGE_ERROR"
