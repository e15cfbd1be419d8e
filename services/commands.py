"""Command execution seam shared by the services that talk to Windows."""
from __future__ import annotations

import subprocess
from typing import Protocol, Sequence

POWERSHELL = "powershell"


class CommandRunner(Protocol):
    def run(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:  # pragma: no cover - protocol
        ...


class SubprocessRunner:
    def run(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.run(command, capture_output=True, text=True, check=False)


def powershell_command(script: str, *, powershell: str = POWERSHELL) -> list[str]:
    return [powershell, "-NoProfile", "-NonInteractive", "-Command", script]


def ps_literal(value: object) -> str:
    """Quote ``value`` as a single-quoted PowerShell string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def format_command_detail(completed: subprocess.CompletedProcess[str]) -> str:
    detail_parts = [f"exit={completed.returncode}"]
    stdout = (completed.stdout or "").strip()
    stderr = (completed.stderr or "").strip()
    if stdout:
        detail_parts.append(f"stdout: {stdout}")
    if stderr:
        detail_parts.append(f"stderr: {stderr}")
    return ", ".join(detail_parts)
