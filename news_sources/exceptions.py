"""
News Source Exceptions - Classified failure hierarchy.

Every failure coming out of the Source Gateway is one of three kinds so
that the cache layer can apply one policy regardless of which source broke:

- FetchTimeoutError  (timeout)   upstream did not answer in bounded time
- UpstreamError      (upstream)  upstream answered with an error or broke the connection
- ParseError         (parse)     payload received but not usable as a list of records

NormalizationError is record-level only; it never fails a whole fetch.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class FailureKind(Enum):
    """Classification of a failed source fetch."""
    TIMEOUT = "timeout"
    UPSTREAM = "upstream"
    PARSE = "parse"


class NewsSourceError(Exception):
    """Base exception for all news source errors."""

    kind: Optional[FailureKind] = None

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
            "kind": self.kind.value if self.kind else None,
            "message": self.message,
            "source_name": self.source_name,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        if self.source_name:
            return f"{self.message} [source={self.source_name}]"
        return self.message


class FetchTimeoutError(NewsSourceError):
    """Upstream did not respond within the gateway timeout."""

    kind = FailureKind.TIMEOUT

    def __init__(
        self,
        message: str,
        source_name: str = "",
        timeout_seconds: Optional[float] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details)
        self.timeout_seconds = timeout_seconds

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["timeout_seconds"] = self.timeout_seconds
        return data


class UpstreamError(NewsSourceError):
    """Upstream responded with an error or the transport failed."""

    kind = FailureKind.UPSTREAM

    def __init__(
        self,
        message: str,
        source_name: str = "",
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details)
        self.status_code = status_code
        self.url = url

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "url": self.url,
        })
        return data

    def is_server_error(self) -> bool:
        return self.status_code is not None and self.status_code >= 500


class ParseError(NewsSourceError):
    """Payload was received but could not be turned into records."""

    kind = FailureKind.PARSE

    def __init__(
        self,
        message: str,
        source_name: str = "",
        raw_data: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details)
        self.raw_data = raw_data[:500] if raw_data else None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["raw_data_preview"] = self.raw_data[:100] if self.raw_data else None
        return data


class NormalizationError(NewsSourceError):
    """A single raw record could not be shaped into a NewsItem."""

    def __init__(
        self,
        message: str,
        source_name: str = "",
        missing_field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, details)
        self.missing_field = missing_field

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["missing_field"] = self.missing_field
        return data


class UnknownSourceError(NewsSourceError):
    """Source id is not known to the registry (or is disabled). Caller error."""
    pass
