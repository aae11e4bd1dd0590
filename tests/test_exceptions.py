"""Tests for the engine exception hierarchy."""

from __future__ import annotations

import pytest

from biomed_search.shared.exceptions import (
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


class TestHierarchy:
    def test_upstream_errors(self):
        assert issubclass(UpstreamUnavailableError, UpstreamError)
        assert issubclass(UpstreamFatalError, UpstreamError)
        assert issubclass(ConfigurationError, UpstreamFatalError)
        assert issubclass(UpstreamError, BiomedSearchError)

    def test_unavailable_is_transient(self):
        error = UpstreamUnavailableError("HTTP 503", backend="PubMed")
        assert error.retryable
        assert error.severity is ErrorSeverity.TRANSIENT
        assert str(error) == "PubMed: HTTP 503"

    def test_fatal_is_not_retryable(self):
        error = UpstreamFatalError("HTTP 401", backend="iCite")
        assert not error.retryable
        assert error.severity is ErrorSeverity.CRITICAL
        assert is_fatal_error(error)
        assert not is_fatal_error(UpstreamUnavailableError())

    def test_backend_from_context_wins(self):
        error = UpstreamFatalError("denied", backend="A", context=ErrorContext(backend="B"))
        assert error.context.backend == "B"
        assert str(error) == "B: denied"

    def test_configuration_error_category(self):
        error = ConfigurationError("bad value")
        assert error.category is ErrorCategory.CONFIGURATION
        assert is_fatal_error(error)


class TestDetails:
    def test_invalid_query_context(self):
        error = InvalidQueryError("   ")
        assert error.context.input_value == "   "
        assert error.context.suggestion == "Provide a non-empty search query"
        assert error.category is ErrorCategory.VALIDATION

    def test_to_dict(self):
        error = UpstreamFatalError(
            "HTTP 403",
            context=ErrorContext(backend="PubMed", operation="search", status_code=403),
        )
        assert error.to_dict() == {
            "error": "PubMed: HTTP 403",
            "category": "upstream",
            "severity": "critical",
            "retryable": False,
            "backend": "PubMed",
            "operation": "search",
            "status_code": 403,
        }

    @pytest.mark.parametrize(
        "error,expected",
        [
            (UpstreamUnavailableError(), True),
            (UpstreamFatalError(), False),
            (RuntimeError("Too Many Requests"), True),
            (RuntimeError("Connection reset by peer"), True),
            (ValueError("bad input"), False),
        ],
    )
    def test_is_retryable_error(self, error, expected):
        assert is_retryable_error(error) is expected
