"""CLI for serving the feed viewer."""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .cli import configure_logging, load_config
from .webapp import create_app

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Serve the feed viewer with per-user starred and read state."
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the configuration XML file.",
    )
    parser.add_argument("--host", default=None, help="Interface to bind. Overrides config.")
    parser.add_argument(
        "--port", type=int, default=None, help="Port to listen on. Overrides config."
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = load_config(args.config)
        configure_logging(args.log_level or app_config.logging.level, app_config.logging.file)
        app = create_app(app_config)
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Could not start the viewer.")
        return 1

    host = args.host or app_config.viewer.host
    port = args.port or app_config.viewer.port
    logger.info("Serving %s on http://%s:%d", app_config.feed_location, host, port)
    app.run(host=host, port=port)
    return 0


if __name__ == "__main__":
    import sys

    sys.exit(main())
