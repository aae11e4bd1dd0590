"""
Exception Hierarchy for the Biomedical Search Engine.

Exception Hierarchy:
    BiomedSearchError (base)
    ├── InvalidQueryError
    ├── UpstreamError
    │   ├── UpstreamUnavailableError   (transient, treated as empty result)
    │   └── UpstreamFatalError         (auth / config, surfaced to caller)
    │       └── ConfigurationError

Only UpstreamFatalError (and subclasses) escapes SearchEngine.search().
Every other error degrades to a well-formed, possibly empty, result page.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = auto()      # Recoverable, can continue
    ERROR = auto()        # Failed but can retry
    CRITICAL = auto()     # Cannot continue
    TRANSIENT = auto()    # Temporary, should retry automatically


class ErrorCategory(Enum):
    """Categories for error classification."""
    UPSTREAM = "upstream"
    VALIDATION = "validation"
    CONFIGURATION = "config"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Structured context attached to every engine error."""
    backend: str | None = None
    operation: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    status_code: int | None = None
    retry_after: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class BiomedSearchError(Exception):
    """
    Base exception for all engine errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    """

    __slots__ = ("context", "severity", "category", "retryable")

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.UPSTREAM,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.backend:
            result["backend"] = self.context.backend
        if self.context.operation:
            result["operation"] = self.context.operation
        if self.context.status_code is not None:
            result["status_code"] = self.context.status_code
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        return result


# =============================================================================
# Validation Errors
# =============================================================================

class InvalidQueryError(BiomedSearchError):
    """Raised when a query cannot be interpreted.

    The extractor never lets this escape: an uninterpretable query is passed
    through unscored instead.
    """

    def __init__(
        self,
        query: str | None,
        reason: str = "Query cannot be empty",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = replace(
            context or ErrorContext(),
            input_value=query,
        )
        if ctx.suggestion is None:
            ctx = replace(ctx, suggestion="Provide a non-empty search query")
        super().__init__(
            f"Invalid query: {reason}",
            context=ctx,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.VALIDATION,
        )


# =============================================================================
# Upstream Errors
# =============================================================================

class UpstreamError(BiomedSearchError):
    """Base class for retrieval / metrics backend failures."""

    def __init__(
        self,
        message: str,
        *,
        backend: str | None = None,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        retryable: bool = True,
    ) -> None:
        ctx = context or ErrorContext()
        if backend and ctx.backend is None:
            ctx = replace(ctx, backend=backend)
        if ctx.backend:
            message = f"{ctx.backend}: {message}"
        super().__init__(
            message,
            context=ctx,
            severity=severity,
            category=ErrorCategory.UPSTREAM,
            retryable=retryable,
        )


class UpstreamUnavailableError(UpstreamError):
    """Timeout, rate limiting or 5xx from a backend. Treated as an empty tier."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        *,
        backend: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            backend=backend,
            context=context,
            severity=ErrorSeverity.TRANSIENT,
            retryable=True,
        )


class UpstreamFatalError(UpstreamError):
    """Authentication, configuration or non-recoverable transport failure."""

    def __init__(
        self,
        message: str = "Backend rejected the request",
        *,
        backend: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            backend=backend,
            context=context,
            severity=ErrorSeverity.CRITICAL,
            retryable=False,
        )


class ConfigurationError(UpstreamFatalError):
    """Raised for missing or invalid engine configuration."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.category = ErrorCategory.CONFIGURATION


def is_retryable_error(error: BaseException) -> bool:
    """Check if an error should be retried."""
    if isinstance(error, BiomedSearchError):
        return error.retryable

    error_str = str(error).lower()
    transient_patterns = [
        "rate limit",
        "too many requests",
        "temporarily unavailable",
        "service unavailable",
        "backend failed",
        "connection reset",
        "timeout",
        "timed out",
        "database is not supported",  # NCBI transient
    ]
    return any(pattern in error_str for pattern in transient_patterns)


def is_fatal_error(error: BaseException) -> bool:
    """True for errors that must abort the request instead of degrading."""
    return isinstance(error, UpstreamFatalError)


__all__ = [
    "BiomedSearchError",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "InvalidQueryError",
    "UpstreamError",
    "UpstreamFatalError",
    "UpstreamUnavailableError",
    "is_fatal_error",
    "is_retryable_error",
]
