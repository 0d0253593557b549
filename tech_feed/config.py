"""Configuration loading for feed sources and the application."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from xml.etree import ElementTree as ET

from .models import FeedSource

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "public/feed.json"
DEFAULT_STORAGE = "sqlite:///tech_feed_state.db"

DEFAULT_SOURCES: List[FeedSource] = [
    FeedSource("Cloudflare", "https://blog.cloudflare.com/rss/"),
    FeedSource(
        "Google Developers",
        "https://developers.googleblog.com/feeds/posts/default?alt=rss",
    ),
    FeedSource("Pragmatic Engineer", "https://blog.pragmaticengineer.com/rss/"),
    FeedSource("Uber Eng", "https://www.uber.com/en-US/blog/engineering/rss/"),
    FeedSource("Netflix Tech", "https://netflixtechblog.com/feed"),
    FeedSource("InfoQ", "https://feed.infoq.com/"),
    FeedSource("Towards Data Science", "https://towardsdatascience.com/feed/"),
]


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class ViewerConfig:
    feed_url: Optional[str] = None
    storage: str = DEFAULT_STORAGE
    host: str = "127.0.0.1"
    port: int = 8000
    render_limit: int = 300


@dataclass
class AppConfig:
    sources: List[FeedSource] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    output: str = DEFAULT_OUTPUT
    concurrency: int = 8
    timeout: float = 30.0
    verify_tls: bool = True
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    viewer: ViewerConfig = field(default_factory=ViewerConfig)

    @property
    def feed_location(self) -> str:
        """Where the viewer reads the artifact from."""
        return self.viewer.feed_url or self.output


def parse_feeds_config(path: str) -> List[FeedSource]:
    """Parse an OPML file and return feed sources in document order."""
    logger.info("Loading feed configuration from %s", path)
    tree = ET.parse(path)
    root = tree.getroot()
    body = root.find("body")
    if body is None:
        raise ValueError("Feeds file is missing the <body> section.")

    sources: List[FeedSource] = []

    def walk(outline: ET.Element) -> None:
        label = outline.attrib.get("title") or outline.attrib.get("text")
        feed_url = outline.attrib.get("xmlUrl")
        if feed_url:
            sources.append(FeedSource(label=label or feed_url, url=feed_url))
            logger.debug("Registered feed '%s' (%s)", sources[-1].label, feed_url)
            return
        for child in outline.findall("outline"):
            walk(child)

    for outline in body.findall("outline"):
        walk(outline)

    logger.info("Loaded %d feed sources from configuration", len(sources))
    return sources


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def _parse_number(node: ET.Element, tag: str, default, convert):
    text = node.findtext(tag)
    if text is None or not text.strip():
        return default
    try:
        return convert(text.strip())
    except ValueError:
        raise ValueError(f"Invalid value for <{tag}>: {text.strip()!r}")


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    tree = ET.parse(config_path)
    root = tree.getroot()

    config = AppConfig()

    feeds_file = root.findtext("feeds")
    if feeds_file and feeds_file.strip():
        config.sources = parse_feeds_config(
            _resolve_path(config_path, feeds_file.strip())
        )
        if not config.sources:
            raise ValueError("No feeds found in the feeds file.")

    output = root.findtext("output")
    if output and output.strip():
        config.output = _resolve_path(config_path, output.strip())

    config.concurrency = _parse_number(root, "concurrency", config.concurrency, int)
    if config.concurrency < 1:
        raise ValueError("<concurrency> must be at least 1.")
    config.timeout = _parse_number(root, "timeout", config.timeout, float)
    config.verify_tls = _parse_bool(root.findtext("verify-tls", "true"))

    log_node = root.find("logging")
    if log_node is not None:
        config.logging.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            config.logging.file = _resolve_path(config_path, log_file)

    viewer_node = root.find("viewer")
    if viewer_node is not None:
        viewer = config.viewer
        viewer.feed_url = viewer_node.findtext("feed-url") or None
        viewer.storage = viewer_node.findtext("storage", viewer.storage)
        viewer.host = viewer_node.findtext("host", viewer.host)
        viewer.port = _parse_number(viewer_node, "port", viewer.port, int)
        viewer.render_limit = _parse_number(
            viewer_node, "render-limit", viewer.render_limit, int
        )

    return config
