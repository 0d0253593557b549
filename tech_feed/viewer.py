"""Viewer state and the filtering rules applied to the item list.

The state is an explicit object handed to plain functions, so each predicate
can be exercised on its own. Mutating operations change the state in place
and return it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence, Set, Union

from .models import FeedItem

if TYPE_CHECKING:
    from .storage import UserStateStore

logger = logging.getLogger(__name__)

RENDER_LIMIT = 300
MAX_TAG_LENGTH = 20
MAX_TAGS = 4


class View(str, Enum):
    NEW = "new"
    STARRED = "starred"
    ARCHIVE = "archive"


@dataclass
class ViewerState:
    """Everything the viewer needs to decide what to show."""

    items: List[FeedItem] = field(default_factory=list)
    starred_ids: Set[str] = field(default_factory=set)
    read_ids: Set[str] = field(default_factory=set)
    view: View = View.NEW
    search_text: str = ""
    error: Optional[str] = None


def matches_view(item: FeedItem, state: ViewerState) -> bool:
    if state.view is View.STARRED:
        return item.link in state.starred_ids
    if state.view is View.ARCHIVE:
        return item.link in state.read_ids
    return item.link not in state.read_ids


def matches_search(item: FeedItem, search_text: str) -> bool:
    """Case-insensitive substring match on title, categories and source name."""
    needle = search_text.lower()
    if not needle:
        return True
    haystack = " ".join(
        [item.title or "", " ".join(item.categories), item.source or ""]
    ).lower()
    return needle in haystack


def is_visible(item: FeedItem, state: ViewerState) -> bool:
    return matches_view(item, state) and matches_search(item, state.search_text)


def get_filtered_items(state: ViewerState) -> List[FeedItem]:
    return [item for item in state.items if is_visible(item, state)]


def visible_items(state: ViewerState, limit: int = RENDER_LIMIT) -> List[FeedItem]:
    """The window of filtered items that actually gets rendered."""
    return get_filtered_items(state)[:limit]


def toggle_star(
    state: ViewerState, link: str, store: Optional["UserStateStore"] = None
) -> ViewerState:
    state.starred_ids ^= {link}
    if store is not None:
        store.save_starred(state.starred_ids)
    logger.debug("Toggled star for %s", link)
    return state


def toggle_read(
    state: ViewerState, link: str, store: Optional["UserStateStore"] = None
) -> ViewerState:
    state.read_ids ^= {link}
    if store is not None:
        store.save_read(state.read_ids)
    logger.debug("Toggled read for %s", link)
    return state


def set_view(state: ViewerState, view: Union[View, str]) -> ViewerState:
    state.view = View(view)
    return state


def set_search(state: ViewerState, text: str) -> ViewerState:
    state.search_text = text or ""
    return state


def filter_by_tag(state: ViewerState, tag: str) -> ViewerState:
    """Clicking a tag searches for it."""
    return set_search(state, tag)


def display_tags(categories: Sequence) -> List[str]:
    """Short string tags only, at most four."""
    tags = [
        category
        for category in categories or []
        if isinstance(category, str) and len(category) < MAX_TAG_LENGTH
    ]
    return tags[:MAX_TAGS]


def format_age(published: datetime, now: Optional[datetime] = None) -> str:
    """Render a publish date as '5h ago', '3d ago' or a plain date."""
    now = now or datetime.now(timezone.utc)
    hours = max(0, int((now - published).total_seconds() // 3600))
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    return published.strftime("%Y-%m-%d")
