"""
News Cache Exceptions.

Gateway failures (timeout / upstream / parse) never leave the coordinator
as-is: they become a stale fallback when any cached entry exists, and
SourceUnavailableError only on a cold cache.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class NewsCacheError(Exception):
    """Base exception for all cache layer errors."""

    def __init__(
        self,
        message: str,
        source_name: str = "",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.source_name = source_name
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "source_name": self.source_name,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class CacheError(NewsCacheError):
    """Cache store operation failed."""
    pass


class SourceUnavailableError(NewsCacheError):
    """Fetch failed and there is no cached entry to fall back to."""

    def __init__(
        self,
        message: str,
        source_name: str = "",
        failure_kind: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details)
        self.failure_kind = failure_kind

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["failure_kind"] = self.failure_kind
        return data
