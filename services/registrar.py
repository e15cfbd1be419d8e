"""Binding of logical printer driver names to staged INF files."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from services.commands import CommandRunner, SubprocessRunner, format_command_detail, powershell_command, ps_literal
from services.errors import InventoryError, RegistrationFailure
from services.inventory import PowerShellPrinterDrivers, PrinterDriverQuery

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationOutcome:
    name: str
    inf_path: Path
    registered_before: bool | None
    detail: str = ""

    @property
    def summary(self) -> str:
        return f"registered from {self.inf_path} (registered before: {_describe(self.registered_before)})"


class DriverRegistrar:
    def __init__(
        self,
        *,
        driver_query: PrinterDriverQuery | None = None,
        command_runner: CommandRunner | None = None,
    ) -> None:
        self._runner = command_runner or SubprocessRunner()
        self._drivers = driver_query or PowerShellPrinterDrivers(command_runner=self._runner)

    def is_registered(self, name: str) -> bool | None:
        try:
            registered = self._drivers.registered_names()
        except InventoryError as exc:
            _LOGGER.warning("Unable to query registration of %s: %s", name, exc)
            return None
        return name.casefold() in {item.casefold() for item in registered}

    def register(self, name: str, inf_path: Path) -> RegistrationOutcome:
        """Run ``Add-PrinterDriver`` whether or not ``name`` is already present.

        Re-adding a driver with the same or a newer INF is idempotent on the
        spooler side, so the pre-check only feeds the log.
        """
        inf_path = Path(inf_path)
        before = self.is_registered(name)
        _LOGGER.info("Registering %s from %s (registered before: %s)", name, inf_path, _describe(before))
        script = f"Add-PrinterDriver -Name {ps_literal(name)} -InfPath {ps_literal(inf_path)} -ErrorAction Stop"
        completed = self._runner.run(powershell_command(script))
        detail = format_command_detail(completed)
        if completed.returncode != 0:
            after = self.is_registered(name)
            _LOGGER.error("Add-PrinterDriver failed for %s (registered now: %s): %s", name, _describe(after), detail)
            raise RegistrationFailure(
                f"Add-PrinterDriver failed ({detail}); driver registered afterwards: {_describe(after)}",
                registered_after=after,
            )
        _LOGGER.info("Registered %s", name)
        return RegistrationOutcome(name, inf_path, before, detail)


def _describe(value: bool | None) -> str:
    if value is None:
        return "unknown"
    return "yes" if value else "no"
