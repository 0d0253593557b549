from datetime import datetime, timezone

import pytest

from tech_feed.models import FeedItem
from tech_feed.storage import UserStateStore


@pytest.fixture
def make_item():
    def _make(
        link,
        title="Title",
        published=None,
        source="Example",
        categories=None,
    ):
        return FeedItem(
            title=title,
            link=link,
            published=published or datetime(2024, 1, 1, tzinfo=timezone.utc),
            source=source,
            source_url="https://example.com",
            categories=list(categories or []),
        )

    return _make


@pytest.fixture
def store(tmp_path):
    return UserStateStore.from_url(f"sqlite:///{tmp_path / 'state.db'}")
