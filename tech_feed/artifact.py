"""Reading and writing the JSON feed artifact."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import requests

from .models import FeedItem, parse_timestamp

logger = logging.getLogger(__name__)


class ArtifactError(RuntimeError):
    """Raised when an artifact file cannot be read."""


class FeedLoadError(RuntimeError):
    """Raised when the viewer cannot load the artifact."""


def write_artifact(path: str, items: Iterable[FeedItem]) -> int:
    location = Path(path)
    if location.parent and not location.parent.exists():
        location.parent.mkdir(parents=True, exist_ok=True)

    serialisable = [item.to_dict() for item in items]
    location.write_text(
        json.dumps(serialisable, indent=2, ensure_ascii=False), encoding="utf-8"
    )
    logger.info("Successfully wrote %d items to %s", len(serialisable), location)
    return len(serialisable)


def _validate_payload(payload, location) -> List[dict]:
    if not isinstance(payload, list):
        raise ArtifactError(f"Feed artifact must contain a JSON array: {location}")
    for item in payload:
        if not isinstance(item, dict):
            raise ArtifactError(f"Feed artifact must contain objects only: {location}")
    return payload


def read_artifact(path: str) -> List[dict]:
    location = Path(path)
    try:
        payload = json.loads(location.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ArtifactError(f"Feed artifact not found: {location}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ArtifactError(f"Feed artifact could not be read: {location}") from exc
    except json.JSONDecodeError as exc:
        raise ArtifactError(f"Feed artifact is not valid JSON: {location}") from exc
    return _validate_payload(payload, location)


def load_previous_dates(path: str) -> Dict[str, datetime]:
    """Map each link of the previous run's output to its publish date."""
    if not Path(path).exists():
        logger.info("No previous artifact at %s; nothing to reconcile against", path)
        return {}

    try:
        payload = read_artifact(path)
    except ArtifactError as exc:
        logger.warning("Could not read existing artifact: %s", exc)
        return {}

    dates: Dict[str, datetime] = {}
    for entry in payload:
        link = entry.get("link")
        published = parse_timestamp(entry.get("pubDate"))
        if link and published is not None:
            dates[link] = published

    logger.info("Loaded %d previous publish dates from %s", len(dates), path)
    return dates


def _items_from_payload(payload: List[dict]) -> List[FeedItem]:
    items: List[FeedItem] = []
    for entry in payload:
        try:
            items.append(FeedItem.from_dict(entry))
        except ValueError as exc:
            logger.warning("Skipping artifact entry: %s", exc)
    return items


def fetch_artifact(location: str, timeout: Optional[float] = 10.0) -> List[FeedItem]:
    """Load the artifact from an HTTP(S) URL or a local path."""
    if location.startswith(("http://", "https://")):
        logger.debug("Loading feed artifact from %s", location)
        try:
            response = requests.get(location, timeout=timeout)
        except requests.RequestException as exc:
            raise FeedLoadError(f"Failed to load {location}: {exc}") from exc
        if not response.ok:
            raise FeedLoadError(
                f"Failed to load {location}: HTTP {response.status_code}"
            )
        try:
            payload = _validate_payload(response.json(), location)
        except (ValueError, ArtifactError) as exc:
            raise FeedLoadError(f"Failed to load {location}: {exc}") from exc
    else:
        try:
            payload = read_artifact(location)
        except ArtifactError as exc:
            raise FeedLoadError(str(exc)) from exc

    return _items_from_payload(payload)
