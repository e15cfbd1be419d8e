from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Sequence

import pytest

from print_driver_upgrader.constants import DriverSpec
from services.errors import InventoryError
from services.inventory import DriverInventory, PowerShellFileVersion, PowerShellPrinterDrivers


class FakeRunner:
    def __init__(self, stdout: str = "", returncode: int = 0) -> None:
        self.stdout = stdout
        self.returncode = returncode
        self.commands: list[Sequence[str]] = []

    def run(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:
        self.commands.append(tuple(command))
        return subprocess.CompletedProcess(command, self.returncode, self.stdout, "")


class FakeDriverQuery:
    def __init__(self, names: set[str]) -> None:
        self.names = names

    def registered_names(self) -> set[str]:
        return set(self.names)


class FakeVersionReader:
    def __init__(self, version: str | None) -> None:
        self.version = version
        self.paths: list[Path] = []

    def read(self, path: Path) -> str | None:
        self.paths.append(path)
        return self.version


def _spec(name: str, version_glob: str) -> DriverSpec:
    return DriverSpec(
        name=name,
        url="https://example.invalid/driver.zip",
        description_glob="*.inf",
        content_pattern=name,
        version_file_glob=version_glob,
        minimum_version="61.315.1.25959",
    )


def test_registered_names_parses_json_list() -> None:
    runner = FakeRunner(json.dumps(["HP Universal Printing PCL 6", "Microsoft Print To PDF"]))
    names = PowerShellPrinterDrivers(command_runner=runner).registered_names()
    assert names == {"HP Universal Printing PCL 6", "Microsoft Print To PDF"}
    assert runner.commands[0][0] == "powershell"
    assert "Get-PrinterDriver" in runner.commands[0][-1]


def test_registered_names_accepts_single_string_and_empty_output() -> None:
    assert PowerShellPrinterDrivers(command_runner=FakeRunner('"Only Driver"')).registered_names() == {"Only Driver"}
    assert PowerShellPrinterDrivers(command_runner=FakeRunner("")).registered_names() == set()


def test_registered_names_raises_on_failure() -> None:
    with pytest.raises(InventoryError):
        PowerShellPrinterDrivers(command_runner=FakeRunner("", returncode=1)).registered_names()
    with pytest.raises(InventoryError):
        PowerShellPrinterDrivers(command_runner=FakeRunner("not json")).registered_names()


def test_file_version_reader_quotes_path_and_strips_output() -> None:
    runner = FakeRunner("61.315.1.25959\r\n")
    version = PowerShellFileVersion(command_runner=runner).read(Path("C:/Program Files/O'Brien/hpcui.dll"))
    assert version == "61.315.1.25959"
    assert "'C:/Program Files/O''Brien/hpcui.dll'" in runner.commands[0][-1]


def test_file_version_reader_returns_none_on_error() -> None:
    assert PowerShellFileVersion(command_runner=FakeRunner("", returncode=1)).read(Path("x.dll")) is None


def test_list_installed_only_reports_registered_specs(tmp_path: Path) -> None:
    binary = tmp_path / "x64" / "hpcui1.dll"
    binary.parent.mkdir()
    binary.write_bytes(b"MZ")
    registered = _spec("HP Universal Printing PCL 6", str(tmp_path / "x64" / "hpcui*.dll"))
    missing = _spec("HP Universal Printing PS", str(tmp_path / "x64" / "hpcps*.dll"))
    reader = FakeVersionReader("61.315.1.25959")
    inventory = DriverInventory(
        driver_query=FakeDriverQuery({"hp universal printing pcl 6"}),
        version_reader=reader,
    )
    installed = inventory.list_installed([registered, missing])
    assert list(installed) == ["HP Universal Printing PCL 6"]
    info = installed["HP Universal Printing PCL 6"]
    assert info.version == "61.315.1.25959"
    assert info.version_file == binary
    assert reader.paths == [binary]


def test_list_installed_without_version_file_has_no_version(tmp_path: Path) -> None:
    spec = _spec("HP Universal Printing PCL 6", str(tmp_path / "*" / "hpcui*.dll"))
    reader = FakeVersionReader("1.0.0.0")
    inventory = DriverInventory(driver_query=FakeDriverQuery({spec.name}), version_reader=reader)
    info = inventory.list_installed([spec])[spec.name]
    assert info.version is None
    assert info.version_file is None
    assert reader.paths == []


def test_resolve_version_file_takes_first_of_several_matches(tmp_path: Path) -> None:
    for arch in ("x64", "W32X86"):
        folder = tmp_path / arch
        folder.mkdir()
        (folder / "hpcui.dll").write_bytes(b"MZ")
    spec = _spec("Driver", str(tmp_path / "*" / "hpcui.dll"))
    inventory = DriverInventory(driver_query=FakeDriverQuery(set()), version_reader=FakeVersionReader(None))
    assert inventory.resolve_version_file(spec) == tmp_path / "W32X86" / "hpcui.dll"


class BlockedRunner:
    def __init__(self) -> None:
        self.commands: list[Sequence[str]] = []

    def run(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:
        self.commands.append(tuple(command))
        raise PermissionError(13, "Access is denied", "powershell")


def test_registered_names_reports_blocked_powershell_as_inventory_error() -> None:
    with pytest.raises(InventoryError, match="Access is denied"):
        PowerShellPrinterDrivers(command_runner=BlockedRunner()).registered_names()


def test_file_version_reader_returns_none_when_powershell_is_blocked() -> None:
    assert PowerShellFileVersion(command_runner=BlockedRunner()).read(Path("hpcui.dll")) is None
