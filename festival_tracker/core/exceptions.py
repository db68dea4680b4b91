"""
Custom Exceptions

This module defines the error taxonomy of the tracker.

- ValidationError: malformed festival ID or redirect URL
- StorageError: persistence layer unreachable, write/read rejected, timeouts
- AuthorizationError: operator-only action without sufficient privilege

Gate outcomes (rate limited, bot suspected) are NOT exceptions, see
services/request_gate.py.
"""

from typing import Optional


class FestivalTrackerException(Exception):
    """Base exception for the festival tracker."""
    pass


class ValidationError(FestivalTrackerException):
    """Raised when an operator-supplied value fails validation."""

    def __init__(self, field: str, value: str, reason: str = "Invalid value"):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"{reason}: {field}={value!r}")


class StorageError(FestivalTrackerException):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Storage error: {message}")


class AuthorizationError(FestivalTrackerException):
    """Raised when an operator action is attempted without privilege."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Not authorized to {action}")
