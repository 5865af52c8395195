"""
Dealroom error types — one code per failure class of the chat core.
"""

from typing import Any, Optional


class DealroomError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class AuthenticationError(DealroomError):
    """Missing, malformed or expired credential. Fatal to the connection attempt."""

    def __init__(self, message: str, code: str = "auth_error"):
        super().__init__(code, message)


class InvalidArgument(DealroomError):
    """Malformed room input or missing event fields. Reported to the caller only."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("invalid_argument", message, details)


class PersistenceError(DealroomError):
    """Storage unavailable during create/list/mark-read."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("persistence_error", message, details)


class CacheUnavailable(DealroomError):
    """Soft failure of the fast-path cache; callers fall back to the store."""

    def __init__(self, message: str):
        super().__init__("cache_unavailable", message)


class ConnectionError(DealroomError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)
