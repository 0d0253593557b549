import textwrap
from pathlib import Path

import pytest

from tech_feed.config import (
    DEFAULT_SOURCES,
    parse_app_config,
    parse_feeds_config,
)
from tech_feed.models import FeedSource


def _write(path, content):
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


def test_parse_feeds_config_flattens_nested_outlines(tmp_path):
    opml = _write(
        tmp_path / "feeds.xml",
        """\
        <opml version="2.0">
          <body>
            <outline text="Tech">
              <outline type="rss" text="Eng Blog" xmlUrl="https://example.com/eng.xml" />
            </outline>
            <outline title="Standalone" type="rss" xmlUrl="https://example.com/standalone.xml" />
            <outline type="rss" xmlUrl="https://example.com/unnamed.xml" />
          </body>
        </opml>
        """,
    )

    assert parse_feeds_config(str(opml)) == [
        FeedSource("Eng Blog", "https://example.com/eng.xml"),
        FeedSource("Standalone", "https://example.com/standalone.xml"),
        FeedSource("https://example.com/unnamed.xml", "https://example.com/unnamed.xml"),
    ]


def test_parse_feeds_config_missing_body_raises(tmp_path):
    opml = _write(tmp_path / "feeds.xml", "<opml version='2.0'></opml>")

    with pytest.raises(ValueError):
        parse_feeds_config(str(opml))


def test_parse_app_config_reads_all_sections(tmp_path):
    _write(
        tmp_path / "feeds.xml",
        """\
        <opml version="2.0"><body>
          <outline type="rss" text="Example" xmlUrl="https://example.com/rss" />
        </body></opml>
        """,
    )
    config_path = _write(
        tmp_path / "config.xml",
        """\
        <config>
          <feeds>feeds.xml</feeds>
          <output>public/feed.json</output>
          <concurrency>3</concurrency>
          <timeout>12.5</timeout>
          <verify-tls>false</verify-tls>
          <logging><level>DEBUG</level><file>logs/app.log</file></logging>
          <viewer>
            <feed-url>https://feeds.example.com/feed.json</feed-url>
            <storage>sqlite:///state.db</storage>
            <port>9000</port>
            <render-limit>50</render-limit>
          </viewer>
        </config>
        """,
    )

    config = parse_app_config(str(config_path))

    assert config.sources == [FeedSource("Example", "https://example.com/rss")]
    assert config.output == str((tmp_path / "public" / "feed.json").resolve())
    assert config.concurrency == 3
    assert config.timeout == 12.5
    assert config.verify_tls is False
    assert config.logging.level == "DEBUG"
    assert config.logging.file == str((tmp_path / "logs" / "app.log").resolve())
    assert config.viewer.storage == "sqlite:///state.db"
    assert config.viewer.host == "127.0.0.1"
    assert config.viewer.port == 9000
    assert config.viewer.render_limit == 50
    assert config.feed_location == "https://feeds.example.com/feed.json"


def test_parse_app_config_defaults(tmp_path):
    config = parse_app_config(str(_write(tmp_path / "config.xml", "<config />")))

    assert config.sources == DEFAULT_SOURCES
    assert config.output == "public/feed.json"
    assert config.feed_location == "public/feed.json"
    assert config.verify_tls is True


def test_parse_app_config_rejects_bad_numbers(tmp_path):
    config_path = _write(
        tmp_path / "config.xml", "<config><concurrency>many</concurrency></config>"
    )

    with pytest.raises(ValueError):
        parse_app_config(str(config_path))


def test_parse_app_config_missing_file():
    with pytest.raises(FileNotFoundError):
        parse_app_config(str(Path("does/not/exist.xml")))


def test_example_config_is_valid():
    root = Path(__file__).resolve().parent.parent
    config = parse_app_config(str(root / "configs" / "config.example.xml"))

    assert [source.label for source in config.sources] == [
        source.label for source in DEFAULT_SOURCES
    ]
