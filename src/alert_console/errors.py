"""
Error taxonomy for the alert console.

None of these is fatal to the process. The worst case is a disconnected
console showing snapshot data, which stays usable.
"""

from __future__ import annotations

from typing import Optional


class ConsoleError(Exception):
    """Base exception for alert console errors."""
    pass


class TransportError(ConsoleError):
    """Push channel connect/handshake/close failure. Recovered by reconnecting."""
    pass


class ValidationError(ConsoleError):
    """Malformed user input, rejected before any network call."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class PersistenceError(ConsoleError):
    """Backend rejected a catalog fetch or threshold save."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class QueryError(ConsoleError):
    """Filtered alert log fetch failed."""
    pass
