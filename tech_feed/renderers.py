"""Rendering helpers for the viewer page."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional
from urllib.parse import urlencode

from .templating import get_environment
from .viewer import RENDER_LIMIT, View, ViewerState, visible_items

PAGE_TITLE = "Tech Feed"
FOOTER = "Built from RSS feeds, refreshed on a schedule."

_PATHS = {"index": "/", "star": "/star", "read": "/read"}


def build_url(endpoint: str, **params) -> str:
    """Build a relative URL for a viewer endpoint, skipping empty parameters."""
    query = urlencode({key: value for key, value in params.items() if value})
    path = _PATHS[endpoint]
    return f"{path}?{query}" if query else path


def build_page_html(
    state: ViewerState,
    now: Optional[datetime] = None,
    limit: int = RENDER_LIMIT,
    url: Callable[..., str] = build_url,
) -> str:
    """Render the full viewer page for the given state."""
    env = get_environment()
    template = env.get_template("feed.html.j2")
    items = [] if state.error else visible_items(state, limit)
    return template.render(
        title=PAGE_TITLE,
        footer=FOOTER,
        views=list(View),
        active_view=state.view,
        search_text=state.search_text,
        error=state.error,
        items=items,
        starred_ids=state.starred_ids,
        read_ids=state.read_ids,
        now=now,
        url=url,
    )
