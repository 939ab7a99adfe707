"""
Pydantic schemas for the news API.

Field names follow the outward JSON shape (camelCase where clients expect it).
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


# =============================================================
# ITEMS
# =============================================================

class NewsItemSchema(BaseModel):
    """One normalized news item."""
    id: str
    title: str
    url: str
    mobileUrl: Optional[str] = None
    pubDate: Optional[int] = Field(None, description="Publication time, epoch milliseconds")
    extra: Optional[Dict[str, Any]] = None


class SourceResponse(BaseModel):
    """Items of one source."""
    status: Literal["success", "cache"]
    id: str
    updatedTime: int = Field(..., description="Fetch time of the items, epoch milliseconds")
    items: List[NewsItemSchema]


# =============================================================
# REQUESTS
# =============================================================

class EntireRequest(BaseModel):
    """Batch read of several sources."""
    sources: List[str] = Field(..., min_length=1, max_length=100)


# =============================================================
# METADATA / STATUS
# =============================================================

class SourceInfo(BaseModel):
    name: str
    title: str
    column: str
    interval_seconds: int
    type: str
    home: str = ""


class SourcesResponse(BaseModel):
    sources: List[SourceInfo]
    columns: Dict[str, List[str]]


class ErrorResponse(BaseModel):
    error: str
    id: Optional[str] = None
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str = "1.0.0"
    uptime_seconds: float = 0
    sources: Dict[str, str] = Field(default_factory=dict)
