"""
Infrastructure exceptions for the emitter package.

Two things can go wrong outside a listener: the static configuration is
unusable, or `drain()` is awaited from an event loop that does not own the
pending dispatch passes. Both are reported with the types below.

Every exception here carries a human-readable `message`, a `details` dict,
an `ErrorSeverity` for log routing and a stable `error_code`. Exceptions
raised by listener callbacks are never wrapped; they reach the caller of
`emit()` / `publish()` / `drain()` unchanged. Invalid subscription arguments
are not errors at all: they are ignored.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class EmitterInfrastructureException(Exception):
    """
    Base class for emitter infrastructure errors.

    Parameters
    ----------
    message:
        What went wrong.
    details:
        Structured context, logged as-is.
    severity:
        Overrides the class default severity.
    error_code:
        Stable code; defaults to the class name.

    Examples
    --------
    >>> error = EmitterInfrastructureException("Dispatch failed", {"event_name": "a"})
    >>> error.to_dict()["error_code"]
    'EmitterInfrastructureException'
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details) if details else {}
        self.severity = severity if severity is not None else self.DEFAULT_SEVERITY
        self.error_code = error_code if error_code is not None else type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
        }

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.error_code}] {self.message}"
        return f"[{self.error_code}] {self.message} | Details: {self.details}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, details={self.details!r}, "
            f"severity={self.severity.value!r})"
        )


class ConfigurationError(EmitterInfrastructureException):
    """A static setting is invalid where no fallback is allowed (production)."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class DispatchLoopError(EmitterInfrastructureException):
    """
    Raised when pending dispatches are awaited from a foreign event loop.

    Background dispatch passes started by `Emitter.emit()` are bound to the
    loop that was running when they suspended; they can only be drained from
    that same loop.
    """

    def __init__(self, pending: int) -> None:
        self.pending = pending
        super().__init__(
            "Pending dispatches belong to a different event loop",
            details={"pending_dispatches": pending},
            error_code="DISPATCH_LOOP_MISMATCH",
        )


def get_error_severity(error: Exception) -> ErrorSeverity:
    """Return the severity of an exception, defaulting to ERROR."""
    if isinstance(error, EmitterInfrastructureException):
        return error.severity
    return ErrorSeverity.ERROR


__all__ = [
    "ErrorSeverity",
    "EmitterInfrastructureException",
    "ConfigurationError",
    "DispatchLoopError",
    "get_error_severity",
]
