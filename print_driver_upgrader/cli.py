"""Command line entry point for unattended printer driver upgrades."""
from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Sequence

from print_driver_upgrader.constants import IMMUTABLE_CONFIG
from print_driver_upgrader.logging_config import configure_logging
from print_driver_upgrader.paths import get_application_directory
from print_driver_upgrader.settings import SettingsError, load_driver_specs
from services.privilege import is_admin
from services.upgrade import EXIT_FAILURES, UpgradeOrchestrator

_LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="print-driver-upgrade",
        description="Detect outdated printer drivers and upgrade them to a known-good version.",
    )
    parser.add_argument(
        "--skip-version-check",
        action="store_true",
        help="Upgrade every configured driver without checking installed versions",
    )
    parser.add_argument("--strict", action="store_true", help="Exit with 2 when any driver failed to upgrade")
    parser.add_argument("--config", help="JSON driver catalog replacing the built-in one")
    parser.add_argument("--log-file", help="Append the run log to this file")
    parser.add_argument("--working-dir", help="Folder for temporary downloads (default: application directory)")
    parser.add_argument("--timeout", type=float, help="Download timeout in seconds (default: none)")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file)

    specs = IMMUTABLE_CONFIG.drivers
    if args.config:
        try:
            specs = load_driver_specs(args.config)
        except SettingsError as exc:
            _LOGGER.error("Invalid driver catalog: %s", exc)
            return EXIT_FAILURES
        _LOGGER.info("Loaded %d driver(s) from %s", len(specs), args.config)

    if os.name == "nt" and not is_admin():
        _LOGGER.warning("Not running elevated; staging and registration are expected to fail")

    working_dir = Path(args.working_dir) if args.working_dir else get_application_directory()
    orchestrator = UpgradeOrchestrator(specs, working_dir=working_dir, download_timeout=args.timeout)
    report = orchestrator.run(skip_version_check=args.skip_version_check)
    exit_code = report.exit_code(strict=args.strict)
    _LOGGER.info("Exiting with status %d (%s)", exit_code, report.status.value)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
