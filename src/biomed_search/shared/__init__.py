"""Shared kernel: exceptions, settings and async helpers."""

from .exceptions import (
    BiomedSearchError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InvalidQueryError,
    UpstreamError,
    UpstreamFatalError,
    UpstreamUnavailableError,
    is_fatal_error,
    is_retryable_error,
)
from .settings import EngineSettings

__all__ = [
    "BiomedSearchError",
    "ConfigurationError",
    "EngineSettings",
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
