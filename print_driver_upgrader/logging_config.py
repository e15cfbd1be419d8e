"""Logging setup for unattended upgrade runs.

Every event is appended to a persistent log file and mirrored to the console so
that both the deployment tool capturing stdout and an administrator reading the
file later see the same timestamped lines.

Two environment variables choose where the log file is written:

``PRINT_DRIVER_UPGRADE_LOG_FILE``
    Path of the log file.

``PRINT_DRIVER_UPGRADE_LOG_DIR``
    Directory for the default log file name. Ignored when
    ``PRINT_DRIVER_UPGRADE_LOG_FILE`` is set.

The file is opened in append mode and never rotated.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from print_driver_upgrader.constants import IMMUTABLE_CONFIG
from print_driver_upgrader.paths import get_application_directory

_LOG_FILE_ENV = "PRINT_DRIVER_UPGRADE_LOG_FILE"
_LOG_DIR_ENV = "PRINT_DRIVER_UPGRADE_LOG_DIR"
_HANDLER_TAG = "_print_driver_upgrade_handler"
_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_CONFIGURED = False
_LOG_PATH: Path | None = None


def configure_logging(log_path: Path | str | None = None, *, console: bool = True) -> Path:
    """Attach the file and console handlers to the root logger.

    Repeated calls are no-ops and return the path chosen by the first call.

    Returns
    -------
    Path
        Location of the append-only log file.
    """

    global _CONFIGURED, _LOG_PATH

    if _CONFIGURED and _LOG_PATH is not None:
        return _LOG_PATH

    path = Path(log_path).expanduser() if log_path else resolve_log_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

    file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    setattr(file_handler, _HANDLER_TAG, True)
    root.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setLevel(logging.INFO)
        stream_handler.setFormatter(formatter)
        setattr(stream_handler, _HANDLER_TAG, True)
        root.addHandler(stream_handler)

    _CONFIGURED = True
    _LOG_PATH = path
    logging.getLogger(__name__).info("Writing upgrade log to %s", path)
    return path


def resolve_log_path() -> Path:
    env_file = os.environ.get(_LOG_FILE_ENV)
    if env_file:
        return Path(env_file).expanduser()

    filename = IMMUTABLE_CONFIG.upgrade.log_filename
    env_dir = os.environ.get(_LOG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser() / filename

    return get_application_directory() / "logs" / filename


def _reset_for_tests() -> None:
    """Remove handlers installed by :func:`configure_logging`."""

    global _CONFIGURED, _LOG_PATH

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    _CONFIGURED = False
    _LOG_PATH = None
