"""Loading of driver catalogs from JSON files."""
from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Tuple

from print_driver_upgrader.constants import DriverSpec
from services.versioning import VersionParseError, parse_version

REQUIRED_KEYS = (
    "name",
    "url",
    "description_glob",
    "content_pattern",
    "version_file_glob",
    "minimum_version",
)


class SettingsError(ValueError):
    pass


def load_driver_specs(path: str | Path) -> Tuple[DriverSpec, ...]:
    """Read a driver catalog file.

    The file holds ``{"drivers": [{...}, ...]}`` where every entry carries the
    fields of :class:`DriverSpec`. A bare list of entries is accepted as well.
    """
    catalog_path = Path(path)
    try:
        data = json.loads(catalog_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SettingsError(f"Unable to read driver catalog {catalog_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SettingsError(f"Driver catalog {catalog_path} is not valid JSON: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("drivers")
    if not isinstance(data, list) or not data:
        raise SettingsError(f"Driver catalog {catalog_path} does not list any drivers")
    specs = [_spec_from_entry(entry, index) for index, entry in enumerate(data)]
    seen: set[str] = set()
    for spec in specs:
        key = spec.name.casefold()
        if key in seen:
            raise SettingsError(f"Driver '{spec.name}' is listed more than once")
        seen.add(key)
    return tuple(specs)


def _spec_from_entry(entry: Any, index: int) -> DriverSpec:
    if not isinstance(entry, dict):
        raise SettingsError(f"Driver entry #{index} must be an object")
    missing = [key for key in REQUIRED_KEYS if not str(entry.get(key) or "").strip()]
    if missing:
        raise SettingsError(f"Driver entry #{index} is missing: {', '.join(missing)}")
    values = {key: str(entry[key]).strip() for key in REQUIRED_KEYS}
    try:
        re.compile(values["content_pattern"])
    except re.error as exc:
        raise SettingsError(f"Driver '{values['name']}' has an invalid content_pattern: {exc}") from exc
    try:
        parse_version(values["minimum_version"])
    except VersionParseError as exc:
        raise SettingsError(f"Driver '{values['name']}' has an invalid minimum_version: {exc}") from exc
    return DriverSpec(**values)
