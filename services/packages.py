"""Unpacking of driver archives and discovery of their INF description files."""
from __future__ import annotations

import codecs
import fnmatch
import logging
import re
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path

from services.errors import DescriptionNotFound, ExtractionError

_LOGGER = logging.getLogger(__name__)

DRIVER_VER_PATTERN = re.compile(
    r"^\s*DriverVer\s*=\s*([0-9]{1,2}/[0-9]{1,2}/[0-9]{4})\s*(?:,\s*([0-9][0-9.]*))?",
    re.IGNORECASE | re.MULTILINE,
)


@dataclass(frozen=True)
class DriverVer:
    date: str
    version: str | None

    def __str__(self) -> str:
        return f"{self.date}, {self.version}" if self.version else self.date


@dataclass(frozen=True)
class DescriptionFile:
    path: Path
    driver_ver: DriverVer | None = None
    warning: str | None = None


def parse_driver_ver(text: str) -> DriverVer | None:
    match = DRIVER_VER_PATTERN.search(text)
    if not match:
        return None
    return DriverVer(date=match.group(1), version=match.group(2))


def read_description_text(path: Path) -> str:
    """Decode an INF file, which Windows packages ship as UTF-16 or ANSI."""
    data = Path(path).read_bytes()
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return data.decode("utf-16", errors="replace")
    if data.startswith(codecs.BOM_UTF8):
        return data.decode("utf-8-sig", errors="replace")
    if _looks_like_utf16le(data):
        return data.decode("utf-16-le", errors="replace")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("cp1252", errors="replace")


def _looks_like_utf16le(data: bytes) -> bool:
    # ASCII text encoded as UTF-16LE has a NUL in most odd positions.
    odd = data[1::2]
    return bool(odd) and odd.count(0) * 2 > len(odd)


class PackageExtractor:
    def extract(self, archive: Path, destination: Path) -> Path:
        archive = Path(archive)
        destination = Path(destination)
        _LOGGER.info("Extracting %s to %s", archive, destination)
        try:
            if destination.exists():
                shutil.rmtree(destination)
            destination.mkdir(parents=True)
            with zipfile.ZipFile(archive) as bundle:
                self._extract_members(bundle, destination)
        except (OSError, zipfile.BadZipFile) as exc:
            raise ExtractionError(f"Failed to extract {archive.name}: {exc}") from exc
        return destination

    def locate_description_file(self, root: Path, name_pattern: str, content_pattern: str) -> DescriptionFile:
        root = Path(root)
        pattern = name_pattern.lower()
        content = re.compile(content_pattern, re.IGNORECASE)
        candidates = sorted(path for path in root.rglob("*") if path.is_file() and fnmatch.fnmatch(path.name.lower(), pattern))
        _LOGGER.debug("Found %d file(s) matching %s under %s", len(candidates), name_pattern, root)
        for candidate in candidates:
            try:
                text = read_description_text(candidate)
            except OSError as exc:
                _LOGGER.warning("Skipping unreadable %s: %s", candidate, exc)
                continue
            if not content.search(text):
                continue
            driver_ver = parse_driver_ver(text)
            warning = None
            if driver_ver is None:
                warning = f"DriverVer not found in {candidate.name}"
                _LOGGER.warning("%s; continuing without it", warning)
            else:
                _LOGGER.info("Located %s (DriverVer=%s)", candidate, driver_ver)
            return DescriptionFile(candidate, driver_ver, warning)
        raise DescriptionNotFound(
            f"No file matching {name_pattern!r} containing {content_pattern!r} in {root}"
        )

    def _extract_members(self, bundle: zipfile.ZipFile, destination: Path) -> None:
        root = destination.resolve()
        for member in bundle.infolist():
            target = (root / member.filename).resolve()
            if target != root and root not in target.parents:
                raise ExtractionError(f"Archive member escapes extraction folder: {member.filename}")
            bundle.extract(member, root)
