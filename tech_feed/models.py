"""Shared data models for tech_feed."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime, or None."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Serialise a datetime the way JavaScript's Date.toISOString() does."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc_value = value.astimezone(timezone.utc)
    return utc_value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_value.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class FeedSource:
    """Configuration for a single RSS feed."""

    label: str
    url: str


@dataclass
class FeedItem:
    """Normalised feed item as stored in the JSON artifact."""

    title: str
    link: str
    published: datetime
    source: str
    source_url: str
    content_snippet: str = ""
    categories: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "link": self.link,
            "pubDate": format_timestamp(self.published),
            "contentSnippet": self.content_snippet,
            "categories": list(self.categories),
            "source": self.source,
            "sourceUrl": self.source_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FeedItem":
        """Build an item from its persisted form, ignoring unknown fields."""
        published = parse_timestamp(data.get("pubDate"))
        if published is None:
            raise ValueError(f"Item has no valid pubDate: {data.get('link')}")

        categories = data.get("categories") or []
        return cls(
            title=data.get("title") or "",
            link=data.get("link") or "",
            published=published,
            source=data.get("source") or "",
            source_url=data.get("sourceUrl") or "",
            content_snippet=data.get("contentSnippet") or "",
            categories=[str(category) for category in categories],
        )
