import logging
from types import SimpleNamespace

from tech_feed import cli, viewer_cli
from tech_feed.config import DEFAULT_SOURCES, AppConfig, LoggingConfig
from tech_feed.models import FeedSource


def _restore_handlers(original_handlers):
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
        handler.close()
    for handler in original_handlers:
        logging.getLogger().addHandler(handler)


def test_configure_logging_defaults_to_console_only():
    original_handlers = list(logging.getLogger().handlers)
    try:
        cli.configure_logging("INFO")

        handlers = logging.getLogger().handlers
        assert any(isinstance(handler, logging.StreamHandler) for handler in handlers)
        assert not any(isinstance(handler, logging.FileHandler) for handler in handlers)
    finally:
        _restore_handlers(original_handlers)


def test_configure_logging_with_log_file_creates_file_handler(tmp_path):
    original_handlers = list(logging.getLogger().handlers)
    try:
        log_path = tmp_path / "logs" / "custom.log"
        cli.configure_logging("DEBUG", str(log_path))

        assert log_path.exists()
        assert any(
            isinstance(handler, logging.FileHandler)
            for handler in logging.getLogger().handlers
        )
    finally:
        _restore_handlers(original_handlers)


def _capture_execute(monkeypatch, output_path="public/feed.json"):
    captured = {}

    def fake_execute(config):
        captured["config"] = config
        return SimpleNamespace(output_path=config.output_path, item_count=3)

    monkeypatch.setattr(cli, "execute", fake_execute)
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    return captured


def test_main_without_config_uses_builtin_sources(monkeypatch, capsys):
    captured = _capture_execute(monkeypatch)

    exit_code = cli.main([])

    assert exit_code == 0
    assert captured["config"].sources == DEFAULT_SOURCES
    assert captured["config"].output_path == "public/feed.json"
    assert "Wrote 3 items to public/feed.json" in capsys.readouterr().out


def test_main_loads_config_and_applies_overrides(monkeypatch):
    captured = _capture_execute(monkeypatch)
    app_config = AppConfig(
        sources=[FeedSource("Example", "https://example.com/rss")],
        output="configured.json",
        concurrency=3,
        timeout=5.0,
    )
    monkeypatch.setattr(cli, "parse_app_config", lambda path: app_config)

    cli.main(["--config", "configs/test.xml", "--output", "override.json"])

    run_config = captured["config"]
    assert run_config.sources == app_config.sources
    assert run_config.output_path == "override.json"
    assert run_config.concurrency == 3
    assert run_config.timeout == 5.0


def test_main_cli_overrides_logging(monkeypatch):
    captured_log_config = {}

    def fake_configure(level, log_file=None):
        captured_log_config["level"] = level
        captured_log_config["file"] = log_file

    monkeypatch.setattr(
        cli,
        "parse_app_config",
        lambda path: AppConfig(logging=LoggingConfig(level="INFO", file="config.log")),
    )
    monkeypatch.setattr(
        cli,
        "execute",
        lambda config: SimpleNamespace(output_path=config.output_path, item_count=0),
    )
    monkeypatch.setattr(cli, "configure_logging", fake_configure)

    cli.main(["--config", "c.xml", "--log-level", "DEBUG", "--log-file", "cli.log"])

    assert captured_log_config == {"level": "DEBUG", "file": "cli.log"}


def test_main_returns_error_code_when_write_fails(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)

    def failing_execute(config):
        raise PermissionError("read-only file system")

    monkeypatch.setattr(cli, "execute", failing_execute)

    assert cli.main([]) == 1


def test_main_returns_error_code_for_missing_config(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)

    assert cli.main(["--config", str(tmp_path / "missing.xml")]) == 1


def test_viewer_main_runs_app_with_overrides(monkeypatch):
    calls = {}

    class FakeApp:
        def run(self, host, port):
            calls["run"] = (host, port)

    monkeypatch.setattr(viewer_cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(viewer_cli, "create_app", lambda config: FakeApp())

    exit_code = viewer_cli.main(["--port", "9000"])

    assert exit_code == 0
    assert calls["run"] == ("127.0.0.1", 9000)
