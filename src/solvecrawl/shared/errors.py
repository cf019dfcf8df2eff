"""SolveCrawl Error Handling Module

This module defines the error handling system for SolveCrawl, providing
structured error classes with context information.

The error hierarchy follows these principles:
- One Source of Truth: All error codes are defined in ErrorCode enum
- Structured Context: ErrorContext provides additional information
- Proper Exception Chaining: Original exceptions are preserved

Crawl failures are further split into a small taxonomy that the retry
policy understands:

- FetchTimeoutError: a request or response did not arrive in time
- HttpStatusError: the site answered with a non-success status
- DataShapeError: the payload lacks a field the crawler requires
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

# Type alias for primitive context values (str, int, float, bool only)
PrimitiveContextValue = Union[str, int, float, bool]

# Default keys to mask in safe_dict
SAFE_DICT_MASK_KEYS: tuple[str, ...] = ("user_id",)


class ErrorCode(str, Enum):
    """Error codes for SolveCrawl.

    This enum serves as the single source of truth for all error codes
    used throughout the application.
    """

    # File System Errors
    FILE_READ_ERROR = "FILE_READ_ERROR"
    FILE_WRITE_ERROR = "FILE_WRITE_ERROR"

    # Network and Site Errors
    NETWORK_ERROR = "NETWORK_ERROR"
    API_TIMEOUT = "API_TIMEOUT"
    API_REQUEST_FAILED = "API_REQUEST_FAILED"
    API_RATE_LIMIT = "API_RATE_LIMIT"
    API_SERVER_ERROR = "API_SERVER_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

    # Cache Errors
    CACHE_WRITE_FAILED = "CACHE_WRITE_FAILED"
    CACHE_CORRUPTION = "CACHE_CORRUPTION"

    # Configuration Errors
    CONFIG_ERROR = "CONFIG_ERROR"

    # Crawl Errors
    PROFILE_UNAVAILABLE = "PROFILE_UNAVAILABLE"
    CRAWL_FAILED = "CRAWL_FAILED"
    CONCURRENCY_ERROR = "CONCURRENCY_ERROR"


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Coerce additional_data values to primitives.

    Converts Path, Enum, Decimal to primitive types.

    Args:
        value: Input dictionary or None

    Returns:
        Dictionary with primitive values only, or None

    Raises:
        TypeError: If value is not a dict or contains unconvertible types
    """
    if value is None:
        return None

    if not isinstance(value, dict):
        error_msg = f"additional_data must be dict, got {type(value).__name__}"
        raise TypeError(error_msg)

    coerced: dict[str, PrimitiveContextValue] = {}
    for key, val in value.items():
        if isinstance(val, (str, int, float, bool)):
            coerced[key] = val
        elif isinstance(val, Path):
            coerced[key] = str(val)
        elif isinstance(val, Enum):
            coerced[key] = val.value
        elif isinstance(val, Decimal):
            coerced[key] = float(val)
        elif val is None:
            continue
        else:
            error_msg = (
                f"Cannot coerce {type(val).__name__} to primitive type. "
                f"Only str, int, float, bool, Path, Enum, Decimal are allowed."
            )
            raise TypeError(error_msg)

    return coerced


@dataclass(frozen=True)
class ErrorContext:
    """Context information for errors.

    Only primitive types (str, int, float, bool) are kept in
    additional_data so the context can always be serialized into a log line.

    Attributes:
        file_path: Optional file path associated with the error
        operation: Optional operation name that caused the error
        user_id: Optional user ID (masked in logs)
        additional_data: Optional dict with primitive values only
    """

    file_path: str | None = None
    operation: str | None = None
    user_id: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        if self.additional_data is not None:
            object.__setattr__(
                self, "additional_data", _coerce_primitives(self.additional_data)
            )

    def safe_dict(self, *, mask_keys: tuple[str, ...] | None = None) -> dict[str, Any]:
        """Export context as dict with masking.

        Args:
            mask_keys: Fields to exclude from output. Defaults to SAFE_DICT_MASK_KEYS.

        Returns:
            Dictionary with masked fields and a guaranteed additional_data key.

        Example:
            >>> context = ErrorContext(user_id="12345", file_path="/test")
            >>> context.safe_dict()
            {'file_path': '/test', 'additional_data': {}}
        """
        if mask_keys is None:
            mask_keys = SAFE_DICT_MASK_KEYS

        data: dict[str, Any] = {}
        if self.file_path is not None and "file_path" not in mask_keys:
            data["file_path"] = self.file_path
        if self.operation is not None and "operation" not in mask_keys:
            data["operation"] = self.operation
        if self.user_id is not None and "user_id" not in mask_keys:
            data["user_id"] = self.user_id

        if self.additional_data is not None and "additional_data" not in mask_keys:
            data["additional_data"] = self.additional_data
        else:
            data["additional_data"] = {}

        return data


class SolveCrawlError(Exception):
    """Base exception class for all SolveCrawl errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize SolveCrawlError.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            context: Additional context information
            original_error: Original exception that caused this error
        """
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error

        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error with code, message,
            masked context, and original_error (if present)
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DomainError(SolveCrawlError):
    """Domain-specific errors.

    These errors occur when a crawled record violates a rule the
    crawler relies on.

    Examples:
    - A problem record without a difficulty
    - A malformed problem id
    """


class InfrastructureError(SolveCrawlError):
    """Infrastructure-related errors.

    These errors occur when interacting with external systems
    like the file system or the judge site.

    Examples:
    - Cache file unreadable
    - Network connection failures
    - Unexpected HTTP status
    """


class ApplicationError(SolveCrawlError):
    """Application-level errors.

    Examples:
    - Invalid configuration
    - A crawl that cannot start
    """


class FetchTimeoutError(InfrastructureError):
    """A request or response timed out.

    Transient by nature; the retry policy waits the ``timeout`` interval.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(ErrorCode.API_TIMEOUT, message, context, original_error)


class HttpStatusError(InfrastructureError):
    """The site answered with a status other than 200.

    Attributes:
        status_code: HTTP status code returned by the site
    """

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.status_code = status_code
        if status_code == 429:
            code = ErrorCode.API_RATE_LIMIT
        elif status_code >= 500:
            code = ErrorCode.API_SERVER_ERROR
        else:
            code = ErrorCode.API_REQUEST_FAILED
        super().__init__(
            code,
            message or f"Unexpected HTTP status {status_code}",
            context,
            original_error,
        )


class DataShapeError(DomainError):
    """A fetched record is missing a field the crawler requires.

    Attributes:
        field: Name of the missing or empty field
    """

    def __init__(
        self,
        field: str,
        message: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        self.field = field
        super().__init__(
            ErrorCode.MISSING_REQUIRED_FIELD,
            message or f"Required field '{field}' is missing",
            context,
        )


class CacheCorruptionError(InfrastructureError):
    """The durable cache could not be used as-is.

    Raised for unreadable files, invalid shapes and version mismatches.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(ErrorCode.CACHE_CORRUPTION, message, context, original_error)


class ProfileUnavailableError(ApplicationError):
    """The user profile could not be fetched after all retries."""

    def __init__(self, keyword: str, context: ErrorContext | None = None) -> None:
        self.keyword = keyword
        super().__init__(
            ErrorCode.PROFILE_UNAVAILABLE,
            f"Failed to fetch profile for '{keyword}'",
            context,
        )


class CliError(ApplicationError):
    """CLI-specific error carrying the process exit code."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
        command: str | None = None,
        exit_code: int = 1,
    ):
        super().__init__(code, message, context, original_error)
        self.command = command
        self.exit_code = exit_code


def create_config_error(
    message: str,
    config_key: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> ApplicationError:
    """Create a configuration error with context."""
    additional_data: dict[str, PrimitiveContextValue] | None = (
        {"config_key": config_key} if config_key else None
    )
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return ApplicationError(
        ErrorCode.CONFIG_ERROR,
        message,
        context,
        original_error,
    )
