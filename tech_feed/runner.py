"""High-level orchestration of a feed aggregation run."""

from __future__ import annotations

import concurrent.futures
from collections import Counter
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from .artifact import load_previous_dates, write_artifact
from .feeds import DEFAULT_TIMEOUT, fetch_source
from .models import FeedItem, FeedSource

logger = logging.getLogger(__name__)


@dataclass
class RunConfig:
    """Runtime options for an aggregation run."""

    sources: List[FeedSource]
    output_path: str
    concurrency: int = 8
    timeout: Optional[float] = DEFAULT_TIMEOUT
    verify_tls: bool = True


@dataclass
class RunResult:
    """Returned data after an aggregation run."""

    output_path: str
    item_count: int
    source_counts: Dict[str, int] = field(default_factory=dict)


def merge_items(results: Sequence[List[FeedItem]]) -> List[FeedItem]:
    """Flatten per-source results, newest first, keeping one item per link."""
    flattened = [item for items in results for item in items]
    # sorted() is stable, so ties keep source order and reruns are reproducible.
    ordered = sorted(flattened, key=lambda item: item.published, reverse=True)

    unique: List[FeedItem] = []
    seen_links = set()
    for item in ordered:
        if item.link in seen_links:
            logger.debug("Dropping duplicate link from %s: %s", item.source, item.link)
            continue
        seen_links.add(item.link)
        unique.append(item)
    return unique


def fetch_all(
    sources: Sequence[FeedSource],
    previous_dates: Mapping[str, datetime],
    concurrency: int = 8,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    verify: bool = True,
) -> List[List[FeedItem]]:
    """Fetch every source concurrently; results come back in source order."""

    def process_source(source: FeedSource) -> List[FeedItem]:
        try:
            return fetch_source(source, previous_dates, timeout=timeout, verify=verify)
        except Exception:
            logger.exception("Failed to process feed %s", source.url)
            return []

    if not sources:
        return []

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=max(1, min(concurrency, len(sources)))
    ) as executor:
        return list(executor.map(process_source, sources))


def aggregate(
    sources: Sequence[FeedSource],
    previous_dates: Mapping[str, datetime],
    concurrency: int = 8,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    verify: bool = True,
) -> List[FeedItem]:
    """Fetch all sources and return their items merged, newest first."""
    results = fetch_all(
        sources, previous_dates, concurrency=concurrency, timeout=timeout, verify=verify
    )
    for source, items in zip(sources, results):
        if not items:
            logger.warning("No items retrieved for %s", source.label)
    return merge_items(results)


def execute(config: RunConfig) -> RunResult:
    """Run the aggregator and write the artifact."""
    logger.info("Starting feed fetch for %d sources", len(config.sources))
    previous_dates = load_previous_dates(config.output_path)

    items = aggregate(
        config.sources,
        previous_dates,
        concurrency=config.concurrency,
        timeout=config.timeout,
        verify=config.verify_tls,
    )
    per_source = Counter(item.source for item in items)
    source_counts = {
        source.label: per_source.get(source.label, 0) for source in config.sources
    }
    logger.info("Total items: %d", len(items))

    write_artifact(config.output_path, items)
    return RunResult(
        output_path=config.output_path,
        item_count=len(items),
        source_counts=source_counts,
    )
