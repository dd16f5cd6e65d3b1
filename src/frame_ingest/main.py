"""
Frame Ingest Main Entry Point
=============================

Command-line entry point for the ingest service.

Usage:
    frame-ingest
    frame-ingest --config /app/config.yaml --log-level DEBUG
    python -m frame_ingest.main

Signals:
    SIGINT, SIGTERM - finish the current iteration, release the stream,
                      report statistics, exit 0
"""

import argparse
import logging
import sys
from typing import List, Optional

from frame_ingest import __version__
from frame_ingest.config import load_config, setup_logging
from frame_ingest.errors import ConfigurationError
from frame_ingest.service import EXIT_FAILURE, IngestService
from frame_ingest.shutdown import (
    CancellationToken,
    install_signal_handlers,
    restore_signal_handlers,
)


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="frame-ingest",
        description="Persist rate-limited JPEG frames from a live video stream",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML config file (default: INGEST_CONFIG or ./config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Load configuration, install signal handlers and run the service.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if args.log_level:
        settings.logging.level = args.log_level
    setup_logging(settings)

    token = CancellationToken()
    previous = install_signal_handlers(token)
    try:
        return IngestService(settings, token=token).run()
    finally:
        restore_signal_handlers(previous)


if __name__ == "__main__":
    sys.exit(main())
