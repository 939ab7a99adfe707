"""
News Source Models - Canonical item and source descriptors.

NewsItem is the one record shape every source is normalized into.
It is immutable once produced by a fetch.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from core.clock import from_epoch, to_epoch_ms


class SourceType(Enum):
    """How a source orders its items."""
    HOTTEST = "hottest"
    REALTIME = "realtime"


class SourceStatus(Enum):
    """Health status of a news source as seen by the gateway."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class NewsItem:
    """
    Normalized news item - STRICT schema.

    id is unique within its source. Item order inside a source is the
    source-provided ranking and is never re-sorted.
    """
    id: str
    title: str
    url: str
    mobile_url: Optional[str] = None
    publication_time: Optional[datetime] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only view over a private copy; cached items are shared by every reader.
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the outward JSON shape."""
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "url": self.url,
        }
        if self.mobile_url:
            data["mobileUrl"] = self.mobile_url
        if self.publication_time is not None:
            data["pubDate"] = to_epoch_ms(self.publication_time)
        if self.extra:
            data["extra"] = dict(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NewsItem":
        """Create from a dictionary produced by to_dict()."""
        pub_date = data.get("pubDate")
        return cls(
            id=str(data["id"]),
            title=data["title"],
            url=data["url"],
            mobile_url=data.get("mobileUrl"),
            publication_time=from_epoch(pub_date) if pub_date is not None else None,
            extra=dict(data.get("extra") or {}),
        )


@dataclass
class SourceMetadata:
    """Registry-owned description of one source."""
    name: str
    title: str = ""
    column: str = "general"
    interval_seconds: int = 600
    type: SourceType = SourceType.HOTTEST
    home: str = ""
    redirect: Optional[str] = None
    disable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "column": self.column,
            "interval_seconds": self.interval_seconds,
            "type": self.type.value,
            "home": self.home,
            "redirect": self.redirect,
            "disable": self.disable,
        }


@dataclass
class SourceHealth:
    """Health status of a news source."""
    status: SourceStatus
    last_check: datetime
    latency_ms: Optional[float] = None
    error_count: int = 0
    last_error: Optional[str] = None
    last_error_kind: Optional[str] = None
    last_error_time: Optional[datetime] = None
    consecutive_failures: int = 0
    last_success_time: Optional[datetime] = None

    def is_healthy(self) -> bool:
        return self.status == SourceStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "last_check": self.last_check.isoformat(),
            "latency_ms": self.latency_ms,
            "error_count": self.error_count,
            "last_error": self.last_error,
            "last_error_kind": self.last_error_kind,
            "consecutive_failures": self.consecutive_failures,
            "last_success_time": (
                self.last_success_time.isoformat() if self.last_success_time else None
            ),
        }


@dataclass
class SourceIncident:
    """Record of a failed fetch."""
    source_name: str
    incident_type: str
    timestamp: datetime
    error_message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_name": self.source_name,
            "incident_type": self.incident_type,
            "timestamp": self.timestamp.isoformat(),
            "error_message": self.error_message,
        }
