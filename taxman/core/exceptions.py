"""Structured exception hierarchy for consistent error handling.

Key components:
- **ErrorCode enum**: Standardized error identifiers for programmatic handling
- **Severity enum**: Error classification for monitoring and alerting
- **TaxManError**: Base exception with rich context and fingerprinting
- **Specialized exceptions**: Validation, not-found, storage and startup errors

The API layer maps each exception type to an HTTP status code; everything
below it raises these types and never builds responses itself.
"""

import hashlib
import traceback
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for the TaxMan application."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """An unexpected internal error occurred in the system."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Input validation failed due to invalid or malformed data."""

    NOT_FOUND = "NOT_FOUND"
    """No tax rate applies and no default is configured."""

    STORE_ERROR = "STORE_ERROR"
    """The backing database failed, timed out or was unreachable."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """The service cannot start with the given configuration."""


class Severity(Enum):
    """Severity levels for errors in the TaxMan application."""

    LOW = "LOW"
    """Expected errors caused by client input."""

    MEDIUM = "MEDIUM"
    """Errors that affect a single request but not the service."""

    HIGH = "HIGH"
    """Errors impacting critical functionality such as storage."""

    CRITICAL = "CRITICAL"
    """Errors that prevent the service from running."""


class TaxManError(Exception):
    """Base exception class for all TaxMan application exceptions.

    Args:
        error_code: Unique identifier for the error type (string or ErrorCode enum)
        message: Human-readable error message, safe to show to clients
        severity: Severity level of the error (defaults to MEDIUM)
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        error_code: str | ErrorCode,
        message: str,
        severity: Severity = Severity.MEDIUM,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )
        self.message = message
        self.severity = severity
        self.context = context or {}
        self.cause = cause

        # Exclude this frame
        self.stack_trace = traceback.format_stack()[:-1]
        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    def _generate_fingerprint(self) -> str:
        """Generate a fingerprint for error grouping.

        Returns:
            str: A hash of the error type and the raising location.
        """
        max_frames = 5
        relevant_frames = self.stack_trace[-max_frames:]

        fingerprint_data = f"{self.__class__.__name__}:{self.error_code}"
        for frame in relevant_frames:
            if "site-packages" not in frame and "taxman/" in frame:
                lines = frame.strip().split("\n")
                if lines:
                    fingerprint_data += f":{lines[0]}"

        return hashlib.sha256(fingerprint_data.encode()).hexdigest()[:16]

    @property
    def is_expected(self) -> bool:
        """Whether this error is part of normal operation (LOW or MEDIUM)."""
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(error_code='{self.error_code}', "
            f"message='{self.message}', severity={self.severity.value}{context_str})"
        )


class ValidationError(TaxManError):
    """Raised when a request field breaks an input rule.

    Args:
        message: Description of the validation failure
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.VALIDATION_ERROR, message, Severity.LOW, context, cause
        )


class NotFoundError(TaxManError):
    """Raised when no tax rate applies to a query and no default is set.

    Args:
        message: Description of what was not found
        context: Additional context information about the error
    """

    def __init__(
        self,
        message: str = "tax rate not found",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(ErrorCode.NOT_FOUND, message, Severity.LOW, context)


class StoreError(TaxManError):
    """Raised when the backing database fails or times out.

    The message is shown to clients, so it must not carry driver details;
    those travel in ``cause`` and are only logged.

    Args:
        message: Generic description of the failed operation
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(ErrorCode.STORE_ERROR, message, Severity.HIGH, context, cause)


class ConfigurationError(TaxManError):
    """Raised at startup when the service cannot be brought up.

    Covers a missing database URL, a database that stays unreachable after
    all retries, and schema creation failures.

    Args:
        message: Description of the startup failure
        context: Additional context information about the error
        cause: The original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.CONFIGURATION_ERROR, message, Severity.CRITICAL, context, cause
        )
