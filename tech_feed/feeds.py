"""Feed fetching, normalisation and date reconciliation."""

from __future__ import annotations

import calendar
import logging
import re
import time
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

import feedparser
import requests
from bs4 import BeautifulSoup

from .models import FeedItem, FeedSource

logger = logging.getLogger(__name__)

# Several blogs reject obvious bot user agents, so requests look like a browser.
REQUEST_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.5",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}

DEFAULT_TIMEOUT = 30.0


def to_datetime(value: Optional[time.struct_time]) -> Optional[datetime]:
    """Convert a feedparser UTC time struct to an aware datetime."""
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def current_time() -> datetime:
    """Current UTC time truncated to the millisecond precision of the artifact."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def parse_entry_date(entry) -> Optional[datetime]:
    """Return the entry's publish date, or None when missing or invalid."""
    for attr in ("published_parsed", "updated_parsed", "created_parsed"):
        value = getattr(entry, attr, None)
        if not value:
            continue
        converted = to_datetime(value)
        if converted is not None:
            return converted
    return None


def reconcile_date(
    link: str,
    published: Optional[datetime],
    previous_dates: Mapping[str, datetime],
    now: Optional[datetime] = None,
) -> datetime:
    """Resolve an item's publish date.

    A valid feed date wins. Otherwise the date recorded for the same link by
    the previous run is reused, so that items whose feed drops the date do not
    jump to the top of the list on every run. Items never seen before fall
    back to the current time.
    """
    if published is not None:
        return published
    previous = previous_dates.get(link)
    if previous is not None:
        logger.debug("Reusing previous publish date for %s", link)
        return previous
    logger.debug("No publish date for new item %s; using current time", link)
    return now or current_time()


def _strip_html(raw_value: str) -> str:
    """Return text content extracted from HTML fragments."""
    soup = BeautifulSoup(raw_value, "html.parser")
    text = soup.get_text(separator=" ", strip=True)
    text = re.sub(r"\s+([.,;:!?])", r"\1", text)
    text = re.sub(r"\s{2,}", " ", text)
    return text.strip()


def _entry_snippet(entry) -> str:
    summary = getattr(entry, "summary", None)
    if not summary:
        summary_detail = getattr(entry, "summary_detail", None)
        if summary_detail:
            summary = summary_detail.get("value")
    if not summary:
        content = getattr(entry, "content", None)
        if content:
            try:
                summary = content[0].get("value")
            except (TypeError, KeyError, IndexError, AttributeError):
                summary = None
    return _strip_html(summary) if summary else ""


def _entry_categories(entry) -> List[str]:
    categories: List[str] = []
    for tag in getattr(entry, "tags", None) or []:
        term = tag.get("term") if hasattr(tag, "get") else None
        if term:
            categories.append(term)
    return categories


def fetch_source(
    source: FeedSource,
    previous_dates: Mapping[str, datetime],
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    verify: bool = True,
) -> List[FeedItem]:
    """Fetch and normalise all items of a single feed source.

    Never raises: any failure is logged and yields an empty list so that one
    broken feed cannot abort the batch.
    """
    logger.info("Fetching feed '%s' (%s)", source.label, source.url)
    try:
        response = requests.get(
            source.url, headers=REQUEST_HEADERS, timeout=timeout, verify=verify
        )
        response.raise_for_status()
        parsed = feedparser.parse(response.content)
    except requests.RequestException as exc:
        logger.error("Error fetching %s: %s", source.label, exc)
        return []
    except Exception:  # noqa: BLE001 - parser internals
        logger.exception("Error parsing %s", source.label)
        return []

    if parsed.bozo and not parsed.entries:
        logger.error(
            "Error parsing %s: %s", source.label, parsed.get("bozo_exception")
        )
        return []

    source_url = parsed.feed.get("link") or source.url
    now = current_time()
    items: List[FeedItem] = []

    for entry in parsed.entries:
        link = getattr(entry, "link", None)
        if not link:
            logger.debug("Skipping entry without link in feed '%s'", source.label)
            continue

        items.append(
            FeedItem(
                title=getattr(entry, "title", None) or "",
                link=link,
                published=reconcile_date(
                    link, parse_entry_date(entry), previous_dates, now
                ),
                source=source.label,
                source_url=source_url,
                content_snippet=_entry_snippet(entry),
                categories=_entry_categories(entry),
            )
        )

    logger.info("Fetched %s: %d items", source.label, len(items))
    return items
