"""Four-component driver version comparison."""
from __future__ import annotations

import re
from typing import Tuple

from services.errors import VersionParseError

__all__ = ["VersionParseError", "is_at_least", "parse_version"]

VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)\.(\d+)$")

DriverVersion = Tuple[int, int, int, int]


def parse_version(text: str | None) -> DriverVersion:
    """Return ``major.minor.build.revision`` as a tuple of integers.

    Raises :class:`VersionParseError` unless ``text`` is exactly four dot
    separated non-negative integers.
    """
    cleaned = (text or "").strip()
    match = VERSION_PATTERN.match(cleaned)
    if not match:
        raise VersionParseError(f"Not a four-component version: {text!r}")
    major, minor, build, revision = (int(part) for part in match.groups())
    return (major, minor, build, revision)


def is_at_least(installed: str, minimum: str) -> bool:
    return parse_version(installed) >= parse_version(minimum)
