"""Staging of driver packages into the Windows driver store via pnputil."""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from print_driver_upgrader.constants import IMMUTABLE_CONFIG
from services.commands import CommandRunner, SubprocessRunner, format_command_detail
from services.errors import StagedPathNotFound, StagingFailure

_LOGGER = logging.getLogger(__name__)

# 259: package added but no device to install it on; 3010: reboot required.
ACCEPTED_EXIT_CODES = frozenset({0, 259, 3010})
FAILURE_MARKERS = ("failed",)


@dataclass(frozen=True)
class StagedPath:
    path: Path
    original: Path
    warning: str | None = None

    @property
    def fell_back(self) -> bool:
        return self.path == self.original and self.warning is not None


def detect_staging_failure(completed: subprocess.CompletedProcess[str]) -> str | None:
    """Return why pnputil output indicates a failure, or ``None`` on success.

    pnputil has no structured result beyond its exit code, which it also uses
    for benign outcomes, so its text output is inspected for failure markers.
    """
    output = f"{completed.stdout or ''}\n{completed.stderr or ''}"
    lowered = output.lower()
    for marker in FAILURE_MARKERS:
        if marker in lowered:
            line = next((item.strip() for item in output.splitlines() if marker in item.lower()), marker)
            return f"pnputil reported: {line}"
    if completed.returncode not in ACCEPTED_EXIT_CODES:
        return f"pnputil exited with {completed.returncode}"
    return None


class DriverStager:
    def __init__(
        self,
        *,
        driver_store_root: Path | None = None,
        command_runner: CommandRunner | None = None,
    ) -> None:
        self._store_root = Path(driver_store_root) if driver_store_root else IMMUTABLE_CONFIG.upgrade.driver_store_root
        self._runner = command_runner or SubprocessRunner()

    def stage(self, description_path: Path) -> StagedPath:
        description_path = Path(description_path)
        completed = self._runner.run(["pnputil", "/add-driver", str(description_path), "/install"])
        _LOGGER.info("pnputil output for %s: %s", description_path.name, format_command_detail(completed))
        reason = detect_staging_failure(completed)
        if reason:
            raise StagingFailure(reason, output=completed.stdout or "")
        try:
            staged = self.locate_staged_copy(description_path.name)
        except StagedPathNotFound as exc:
            warning = f"{exc}; registering from {description_path}"
            _LOGGER.warning("%s", warning)
            return StagedPath(description_path, description_path, warning)
        _LOGGER.info("Staged copy of %s is %s", description_path.name, staged)
        return StagedPath(staged, description_path)

    def locate_staged_copy(self, file_name: str) -> Path:
        try:
            candidates = [path for path in self._store_root.glob(f"*/{file_name}") if path.is_file()]
            candidates.sort(key=lambda path: path.stat().st_mtime, reverse=True)
        except OSError as exc:
            raise StagedPathNotFound(f"Unable to search {self._store_root}: {exc}") from exc
        if not candidates:
            raise StagedPathNotFound(f"{file_name} not found in {self._store_root}")
        return candidates[0]
