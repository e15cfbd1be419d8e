"""Read-only inventory of registered printer drivers and their installed versions."""
from __future__ import annotations

import glob
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol

from print_driver_upgrader.constants import DriverSpec
from services.commands import CommandRunner, SubprocessRunner, format_command_detail, powershell_command, ps_literal
from services.errors import InventoryError

_LOGGER = logging.getLogger(__name__)

REGISTERED_DRIVERS_SCRIPT = (
    "ConvertTo-Json -Compress -InputObject "
    "@(Get-PrinterDriver -ErrorAction Stop | Select-Object -ExpandProperty Name)"
)


@dataclass(frozen=True)
class InstalledDriverInfo:
    name: str
    version: str | None
    version_file: Path | None = None


class PrinterDriverQuery(Protocol):
    def registered_names(self) -> set[str]:  # pragma: no cover - protocol
        ...


class FileVersionReader(Protocol):
    def read(self, path: Path) -> str | None:  # pragma: no cover - protocol
        ...


class PowerShellPrinterDrivers:
    """Lists drivers known to the print spooler via ``Get-PrinterDriver``."""

    def __init__(self, *, command_runner: CommandRunner | None = None) -> None:
        self._runner = command_runner or SubprocessRunner()

    def registered_names(self) -> set[str]:
        try:
            completed = self._runner.run(powershell_command(REGISTERED_DRIVERS_SCRIPT))
        except OSError as exc:
            raise InventoryError(f"Unable to run Get-PrinterDriver: {exc}") from exc
        if completed.returncode != 0:
            raise InventoryError(f"Get-PrinterDriver failed: {format_command_detail(completed)}")
        output = (completed.stdout or "").strip()
        if not output:
            return set()
        try:
            data = json.loads(output)
        except json.JSONDecodeError as exc:
            raise InventoryError(f"Unexpected Get-PrinterDriver output: {output[:200]}") from exc
        if isinstance(data, str):
            data = [data]
        if not isinstance(data, list):
            raise InventoryError(f"Unexpected Get-PrinterDriver output: {output[:200]}")
        return {item.strip() for item in data if isinstance(item, str) and item.strip()}


class PowerShellFileVersion:
    """Reads the numeric file version embedded in a binary's version resource."""

    def __init__(self, *, command_runner: CommandRunner | None = None) -> None:
        self._runner = command_runner or SubprocessRunner()

    def read(self, path: Path) -> str | None:
        script = (
            f"$v = (Get-Item -LiteralPath {ps_literal(path)} -ErrorAction Stop).VersionInfo; "
            "'{0}.{1}.{2}.{3}' -f $v.FileMajorPart, $v.FileMinorPart, $v.FileBuildPart, $v.FilePrivatePart"
        )
        try:
            completed = self._runner.run(powershell_command(script))
        except OSError as exc:
            _LOGGER.warning("Unable to read version of %s: %s", path, exc)
            return None
        if completed.returncode != 0:
            _LOGGER.warning("Unable to read version of %s: %s", path, format_command_detail(completed))
            return None
        return (completed.stdout or "").strip() or None


class DriverInventory:
    def __init__(
        self,
        *,
        driver_query: PrinterDriverQuery | None = None,
        version_reader: FileVersionReader | None = None,
        command_runner: CommandRunner | None = None,
    ) -> None:
        runner = command_runner or SubprocessRunner()
        self._drivers = driver_query or PowerShellPrinterDrivers(command_runner=runner)
        self._versions = version_reader or PowerShellFileVersion(command_runner=runner)

    def list_installed(self, specs: Iterable[DriverSpec]) -> dict[str, InstalledDriverInfo]:
        registered = {name.casefold() for name in self._drivers.registered_names()}
        _LOGGER.debug("Registered printer drivers: %s", ", ".join(sorted(registered)) or "<none>")
        installed: dict[str, InstalledDriverInfo] = {}
        for spec in specs:
            if spec.name.casefold() not in registered:
                continue
            version_file = self.resolve_version_file(spec)
            if version_file is None:
                _LOGGER.info("%s is registered but no file matches %s", spec.name, spec.version_file_glob)
                installed[spec.name] = InstalledDriverInfo(spec.name, None)
                continue
            version = self._versions.read(version_file)
            _LOGGER.info("%s is registered; %s reports version %s", spec.name, version_file, version or "<unknown>")
            installed[spec.name] = InstalledDriverInfo(spec.name, version, version_file)
        return installed

    def resolve_version_file(self, spec: DriverSpec) -> Path | None:
        matches = sorted(path for path in glob.glob(spec.version_file_glob) if Path(path).is_file())
        if not matches:
            return None
        if len(matches) > 1:
            _LOGGER.debug("%s matched %d files, using %s", spec.version_file_glob, len(matches), matches[0])
        return Path(matches[0])
