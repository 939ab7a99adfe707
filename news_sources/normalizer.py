"""
Item Normalizer - raw source record -> NewsItem.

Pure functions. A record missing id, title or url is rejected; rejected
records are dropped and counted, they never fail the whole fetch. A fetch
whose every record is rejected is a successful empty result.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from core.clock import from_epoch, from_iso8601

from .exceptions import NormalizationError
from .models import NewsItem


logger = logging.getLogger(__name__)


REQUIRED_FIELDS = ("id", "title", "url")


@dataclass
class NormalizationResult:
    """Outcome of normalizing one fetch worth of raw records."""
    items: list[NewsItem] = field(default_factory=list)
    total: int = 0
    rejected: int = 0
    duplicates: int = 0
    truncated: int = 0

    @property
    def dropped(self) -> int:
        return self.rejected + self.duplicates


def _parse_publication_time(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            return from_epoch(value)
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return from_epoch(int(text))
            return from_iso8601(text)
    except (ValueError, OverflowError, OSError):
        return None
    return None


def _coerce_id(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float)):
        return str(int(value)) if float(value).is_integer() else str(value)
    if isinstance(value, str):
        return value.strip()
    return ""


def normalize_record(raw: Any, source_name: str = "") -> NewsItem:
    """
    Shape one raw record into a NewsItem.

    Raises:
        NormalizationError: record is not a mapping or lacks a required field
    """
    if not isinstance(raw, Mapping):
        raise NormalizationError(
            f"Record is not a mapping: {type(raw).__name__}",
            source_name=source_name,
        )

    item_id = _coerce_id(raw.get("id"))
    title = raw.get("title")
    title = title.strip() if isinstance(title, str) else ""
    url = raw.get("url")
    url = url.strip() if isinstance(url, str) else ""

    for name, value in (("id", item_id), ("title", title), ("url", url)):
        if not value:
            raise NormalizationError(
                f"Record lacks required field '{name}'",
                source_name=source_name,
                missing_field=name,
            )

    mobile_url = raw.get("mobileUrl") or raw.get("mobile_url")
    if not isinstance(mobile_url, str) or not mobile_url.strip():
        mobile_url = None

    pub = raw.get("pubDate", raw.get("publicationTime"))
    publication_time = _parse_publication_time(pub)
    if pub not in (None, "") and publication_time is None:
        logger.debug(f"[{source_name}] Unparseable pubDate {pub!r} on item {item_id}")

    extra = raw.get("extra")
    extra = dict(extra) if isinstance(extra, Mapping) else {}

    return NewsItem(
        id=item_id,
        title=title,
        url=url,
        mobile_url=mobile_url.strip() if mobile_url else None,
        publication_time=publication_time,
        extra=extra,
    )


def normalize_records(
    raw_records: Iterable[Any],
    source_name: str = "",
    limit: Optional[int] = None,
) -> NormalizationResult:
    """
    Normalize a fetch worth of raw records, preserving source order.

    Invalid records are dropped, repeated ids keep their first occurrence,
    and at most ``limit`` items are kept.
    """
    result = NormalizationResult()
    seen: set[str] = set()

    for raw in raw_records:
        result.total += 1
        try:
            item = normalize_record(raw, source_name)
        except NormalizationError as e:
            result.rejected += 1
            logger.debug(f"[{source_name}] Dropped record: {e.message}")
            continue

        if item.id in seen:
            result.duplicates += 1
            continue
        seen.add(item.id)
        result.items.append(item)

    if limit is not None and len(result.items) > limit:
        result.truncated = len(result.items) - limit
        result.items = result.items[:limit]

    if result.dropped:
        logger.info(
            f"[{source_name}] Dropped {result.dropped}/{result.total} records "
            f"({result.rejected} invalid, {result.duplicates} duplicate)"
        )

    return result
