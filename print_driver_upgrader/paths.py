"""Filesystem locations used by the upgrader."""
from __future__ import annotations

import os
from pathlib import Path

_HOME_ENV = "PRINT_DRIVER_UPGRADE_HOME"
_WINDOWS_DIRNAME = "PrintDriverUpgrade"
_POSIX_DIRNAME = ".print_driver_upgrader"


def get_application_directory() -> Path:
    override = os.environ.get(_HOME_ENV)
    if override:
        return Path(override).expanduser()
    if os.name == "nt":
        program_data = os.environ.get("ProgramData") or r"C:\ProgramData"
        return Path(program_data) / _WINDOWS_DIRNAME
    return Path.home() / _POSIX_DIRNAME
