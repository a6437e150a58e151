"""
kvcache - Core Error Types

Defines the exception hierarchy for the caching provider and its stores.
All exceptions inherit from KVCacheError for consistent error handling.

Taxonomy:
- InvalidArgumentError: caller passed a bad key/expiration/value/prefix
- SerializationError: value could not be encoded or decoded
- StoreError: the underlying key-value store failed
- ConfigurationError: configuration is invalid or a backend is unavailable
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for structured error payloads."""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    SERIALIZATION_FAILURE = "SERIALIZATION_FAILURE"
    STORE_FAILURE = "STORE_FAILURE"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class KVCacheError(Exception):
    """Base exception for all kvcache errors."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging or API responses."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }


class InvalidArgumentError(KVCacheError, ValueError):
    """Raised before any store call when an argument is invalid."""

    error_code = ErrorCode.INVALID_ARGUMENT

    def __init__(self, argument: str, message: str, details: dict[str, Any] | None = None):
        error_details = {"argument": argument}
        error_details.update(details or {})
        super().__init__(f"{argument}: {message}", error_details)
        self.argument = argument


class SerializationError(KVCacheError):
    """Raised when a value cannot be serialized or stored bytes cannot be decoded."""

    error_code = ErrorCode.SERIALIZATION_FAILURE


class StoreError(KVCacheError):
    """Raised when the underlying key-value store fails (timeout, connection loss, server error)."""

    error_code = ErrorCode.STORE_FAILURE

    def __init__(self, operation: str, error: Exception, details: dict[str, Any] | None = None):
        error_details = {"operation": operation, "error": str(error)}
        error_details.update(details or {})
        super().__init__(f"Store operation '{operation}' failed: {error}", error_details)
        self.operation = operation


class ConfigurationError(KVCacheError):
    """Raised when configuration is invalid or missing."""

    error_code = ErrorCode.CONFIGURATION_ERROR


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract the appropriate ErrorCode from an exception.

    Args:
        error: Exception to categorize

    Returns:
        ErrorCode for the exception, INTERNAL_ERROR for foreign exceptions
    """
    if isinstance(error, KVCacheError):
        return error.error_code
    return ErrorCode.INTERNAL_ERROR
