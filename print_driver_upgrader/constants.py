"""Immutable driver catalog and upgrade settings."""
from __future__ import annotations

import hashlib
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple


@dataclass(frozen=True)
class DriverSpec:
    name: str
    url: str
    description_glob: str
    content_pattern: str
    version_file_glob: str
    minimum_version: str

    @property
    def slug(self) -> str:
        """Filesystem-safe directory name, unique per driver name."""
        text = re.sub(r"[^a-z0-9]+", "-", self.name.lower()).strip("-") or "driver"
        digest = hashlib.sha1(self.name.encode("utf-8")).hexdigest()[:8]
        return f"{text}-{digest}"


@dataclass(frozen=True)
class UpgradeSettings:
    driver_store_root: Path
    scratch_dirname: str
    log_filename: str
    download_timeout: float | None = None


@dataclass(frozen=True)
class ImmutableConfig:
    upgrade: UpgradeSettings
    drivers: Tuple[DriverSpec, ...]


DRIVER_SOURCE_URL = os.getenv(
    "PRINT_DRIVER_UPGRADE_SOURCE",
    "https://ftp.hp.com/pub/softlib/software13/printers/UPD",
).rstrip("/")

UPD_MINIMUM_VERSION = "61.315.1.25959"

DEFAULT_DRIVER_SPECS: Tuple[DriverSpec, ...] = (
    DriverSpec(
        name="HP Universal Printing PCL 6",
        url=f"{DRIVER_SOURCE_URL}/upd-pcl6-x64-7.3.0.25959.zip",
        description_glob="hpcu*u.inf",
        content_pattern=r"HP Universal Printing PCL 6",
        version_file_glob=r"C:\Windows\System32\spool\drivers\x64\3\hpcui*.dll",
        minimum_version=UPD_MINIMUM_VERSION,
    ),
    DriverSpec(
        name="HP Universal Printing PS",
        url=f"{DRIVER_SOURCE_URL}/upd-ps-x64-7.3.0.25959.zip",
        description_glob="hpcu*v.inf",
        content_pattern=r"HP Universal Printing PS",
        version_file_glob=r"C:\Windows\System32\spool\drivers\x64\3\hpcps*.dll",
        minimum_version=UPD_MINIMUM_VERSION,
    ),
)

UPGRADE_SETTINGS = UpgradeSettings(
    driver_store_root=Path(r"C:\Windows\System32\DriverStore\FileRepository"),
    scratch_dirname="scratch",
    log_filename="upgrade.log",
)

IMMUTABLE_CONFIG = ImmutableConfig(
    upgrade=UPGRADE_SETTINGS,
    drivers=DEFAULT_DRIVER_SPECS,
)
