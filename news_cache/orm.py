"""
Cache Persistence ORM Models.

============================================================
PURPOSE
============================================================
Durable table behind SqlCacheStore. One row per source id,
overwritten in place by every successful refresh.

============================================================
COLUMNS
============================================================
- source_id: Source identifier (primary key)
- updated:   Epoch milliseconds of the fetch that produced `data`
- data:      JSON array of serialized NewsItems, source order
- status:    Entry status at write time ("fresh")

============================================================
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for cache models."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class CachedSource(Base):
    """Cached items for one news source."""

    __tablename__ = "news_cache"

    source_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Source identifier",
    )

    updated: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Fetch time, epoch milliseconds",
    )

    data: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="JSON array of news items",
    )

    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="fresh",
    )

    written_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Row write timestamp (UTC)",
    )

    def __repr__(self) -> str:
        return f"<CachedSource(source_id={self.source_id!r}, updated={self.updated})>"
