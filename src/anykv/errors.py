"""
Error taxonomy for anykv.

This module provides a hierarchical exception system with:
- Error codes for programmatic handling
- Structured context for debugging (backend, operation, key)
- A backend-reported detail kept apart from the message
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for anykv."""

    # Dispatch errors (1xxx)
    DISPATCH_ERROR = "ERR_1000"
    UNSUPPORTED_BACKEND = "ERR_1001"
    ADAPTER_UNAVAILABLE = "ERR_1002"

    # Request errors (2xxx)
    REQUEST_ERROR = "ERR_2000"
    AUTH_MISCONFIGURED = "ERR_2001"
    INVALID_KEY = "ERR_2002"
    READ_ONLY = "ERR_2003"

    # Backend errors (3xxx)
    BACKEND_ERROR = "ERR_3000"
    OPERATION_FAILED = "ERR_3001"
    PROTOCOL_VIOLATION = "ERR_3002"
    TRANSPORT_FAILURE = "ERR_3003"
    NOT_IMPLEMENTED = "ERR_3004"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    backend: str | None = None
    operation: str | None = None
    key: str | None = None
    http_status: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "backend": self.backend,
            "operation": self.operation,
            "key": self.key,
            "http_status": self.http_status,
            **self.extra,
        }


class AnyKVError(Exception):
    """
    Base exception for all anykv errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        detail: Backend-reported cause, when the backend supplied one
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        detail: Any = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.detail = detail
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.detail is not None:
            parts.append(f"(detail={self.detail})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "detail": self.detail,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Dispatch Errors
# =============================================================================


class DispatchError(AnyKVError):
    """Base class for errors raised while binding a backend name to an adapter."""

    code = ErrorCode.DISPATCH_ERROR


class UnsupportedBackendError(DispatchError):
    """The logical backend name is not in the registry."""

    code = ErrorCode.UNSUPPORTED_BACKEND

    def __init__(self, backend: str, **kwargs):
        super().__init__(f'Adapter "{backend}" not supported', **kwargs)
        self.backend = backend


class AdapterUnavailableError(DispatchError):
    """The backend is known but its driver dependency could not be imported."""

    code = ErrorCode.ADAPTER_UNAVAILABLE

    def __init__(self, backend: str, install_hint: str, **kwargs):
        super().__init__(f'Adapter "{backend}" is unavailable. {install_hint}', **kwargs)
        self.backend = backend
        self.install_hint = install_hint


# =============================================================================
# Request Errors
# =============================================================================


class RequestError(AnyKVError):
    """Base class for errors detected before anything reaches the backend."""

    code = ErrorCode.REQUEST_ERROR


class AuthMisconfiguredError(RequestError):
    """Basic auth was required but no credential pair was resolved."""

    code = ErrorCode.AUTH_MISCONFIGURED

    def __init__(self, message: str = "Expected basic auth credentials", **kwargs):
        super().__init__(message, **kwargs)


class InvalidKeyError(RequestError):
    """The key, collection or field name cannot be used."""

    code = ErrorCode.INVALID_KEY


class ReadOnlyError(RequestError):
    """A mutating operation was issued against a read-only adapter."""

    code = ErrorCode.READ_ONLY

    def __init__(self, operation: str, **kwargs):
        super().__init__(f"{operation} is not allowed on a read-only store", **kwargs)
        self.operation = operation


# =============================================================================
# Backend Errors
# =============================================================================


class BackendError(AnyKVError):
    """Base class for failures reported by, or while talking to, a backend."""

    code = ErrorCode.BACKEND_ERROR


class OperationFailedError(BackendError):
    """The backend reported a failed operation (e.g. an ``ERR`` envelope)."""

    code = ErrorCode.OPERATION_FAILED


class ProtocolViolationError(BackendError):
    """The backend response contradicts the operation contract."""

    code = ErrorCode.PROTOCOL_VIOLATION


class TransportError(BackendError):
    """The request did not complete with a success status."""

    code = ErrorCode.TRANSPORT_FAILURE

    def __init__(
        self,
        message: str = "Transport failure",
        *,
        http_status: int | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.http_status = http_status
        if http_status is not None:
            self.context.http_status = http_status


class NotImplementedOperationError(BackendError, NotImplementedError):
    """The adapter does not support this operation."""

    code = ErrorCode.NOT_IMPLEMENTED

    def __init__(self, operation: str, *, backend: str | None = None, **kwargs):
        where = f" by the {backend} adapter" if backend else ""
        super().__init__(f"{operation} is not implemented{where}", **kwargs)
        self.operation = operation


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(AnyKVError, ValueError):
    """Configuration is invalid."""

    code = ErrorCode.CONFIG_ERROR


__all__ = [
    "ErrorCode",
    "ErrorContext",
    "AnyKVError",
    # Dispatch
    "DispatchError",
    "UnsupportedBackendError",
    "AdapterUnavailableError",
    # Request
    "RequestError",
    "AuthMisconfiguredError",
    "InvalidKeyError",
    "ReadOnlyError",
    # Backend
    "BackendError",
    "OperationFailedError",
    "ProtocolViolationError",
    "TransportError",
    "NotImplementedOperationError",
    # Config
    "ConfigError",
]
