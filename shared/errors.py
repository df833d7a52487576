"""
Shared error handling for the Asset Manager client.
"""

from typing import Dict, Any, Optional


class AssetManagerException(Exception):
    """Base exception for the Asset Manager client."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(AssetManagerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NetworkError(AssetManagerException):
    """Transport failure: HTTP error status, timeout or connection problem."""

    def __init__(
        self,
        message: str = "Network error, please check the connection",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        details = dict(details or {})
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__("NETWORK_ERROR", message, details)


class InvalidPattern(AssetManagerException):
    """Invalidation pattern that cannot be compiled as a regular expression."""

    def __init__(self, pattern: Any, reason: str):
        self.pattern = pattern
        super().__init__(
            "INVALID_PATTERN",
            f"Invalid cache invalidation pattern {pattern!r}: {reason}",
            {"pattern": str(pattern), "reason": reason},
        )
