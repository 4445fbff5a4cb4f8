"""Command-line entrypoint."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dir_dedupe.config import DEFAULT_CONFIG_PATH, ConfigurationError, load_config
from dir_dedupe.logging import ConsoleReporter
from dir_dedupe.runner import run_pipeline


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for a deduplication run."""
    parser = argparse.ArgumentParser(
        prog="dir-dedupe",
        description="Remove all but the newest copy of identical files across directories.",
    )
    parser.add_argument(
        "config",
        nargs="?",
        default=str(DEFAULT_CONFIG_PATH),
        help="path to the JSON configuration file (default: config.json)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run one full deduplication pass; return the process exit status."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    reporter = ConsoleReporter(out=sys.stdout, err=sys.stderr)
    try:
        config = load_config(Path(args.config))
    except ConfigurationError as exc:
        reporter.failure(exc)
        return 1
    run_pipeline(config, reporter=reporter)
    return 0
