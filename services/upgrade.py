"""Per-driver upgrade pipeline: decide targets, then fetch, extract, stage and register each."""
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable

from print_driver_upgrader.constants import IMMUTABLE_CONFIG, DriverSpec
from print_driver_upgrader.paths import get_application_directory
from services.commands import CommandRunner, SubprocessRunner
from services.driver_store import DriverStager
from services.errors import InventoryError, VersionParseError
from services.fetcher import ArtifactFetcher
from services.inventory import DriverInventory, InstalledDriverInfo
from services.packages import PackageExtractor
from services.registrar import DriverRegistrar
from services.versioning import is_at_least

_LOGGER = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_NO_SUPPORTED_DRIVERS = 1
EXIT_FAILURES = 2

ARCHIVE_NAME = "package.zip"
EXTRACT_DIRNAME = "extracted"


class PipelineState(str, Enum):
    PENDING = "pending"
    FETCHED = "fetched"
    EXTRACTED = "extracted"
    DESCRIPTION_LOCATED = "description-located"
    STAGED = "staged"
    REGISTERED = "registered"
    FAILED = "failed"
    CLEANED_UP = "cleaned-up"


class PipelineOutcome(str, Enum):
    SKIPPED_UP_TO_DATE = "skipped-up-to-date"
    SKIPPED_NOT_INSTALLED = "skipped-not-installed"
    UPGRADED = "upgraded"
    FAILED = "failed"


class RunStatus(str, Enum):
    COMPLETED = "completed"
    NO_SUPPORTED_DRIVERS = "no-supported-drivers"


@dataclass(frozen=True)
class UpgradeTarget:
    spec: DriverSpec
    reason: str
    installed: InstalledDriverInfo | None = None


@dataclass
class PipelineResult:
    name: str
    outcome: PipelineOutcome
    stage: str | None = None
    detail: str = ""
    warnings: list[str] = field(default_factory=list)
    states: list[PipelineState] = field(default_factory=list)
    installed_version: str | None = None

    @property
    def failed(self) -> bool:
        return self.outcome is PipelineOutcome.FAILED


@dataclass
class TargetSelection:
    targets: list[UpgradeTarget]
    skipped: list[PipelineResult]
    any_registered: bool


@dataclass
class UpgradeReport:
    status: RunStatus
    results: list[PipelineResult]

    @property
    def failed(self) -> list[PipelineResult]:
        return [result for result in self.results if result.failed]

    def outcome_for(self, name: str) -> PipelineOutcome | None:
        for result in self.results:
            if result.name == name:
                return result.outcome
        return None

    def exit_code(self, *, strict: bool = False) -> int:
        if self.status is RunStatus.NO_SUPPORTED_DRIVERS:
            return EXIT_NO_SUPPORTED_DRIVERS
        if strict and self.failed:
            return EXIT_FAILURES
        return EXIT_SUCCESS


class UpgradeOrchestrator:
    """Runs the upgrade pipeline for each configured driver, one at a time.

    Every driver gets its own scratch folder under ``<working_dir>/scratch``,
    which is removed once that driver is done, whatever the outcome. A failure
    while processing one driver is logged and recorded in its result; the run
    then moves on to the next driver.
    """

    def __init__(
        self,
        specs: Iterable[DriverSpec],
        *,
        working_dir: Path | str | None = None,
        inventory: DriverInventory | None = None,
        fetcher: ArtifactFetcher | None = None,
        extractor: PackageExtractor | None = None,
        stager: DriverStager | None = None,
        registrar: DriverRegistrar | None = None,
        command_runner: CommandRunner | None = None,
        download_timeout: float | None = None,
    ) -> None:
        self._specs: tuple[DriverSpec, ...] = tuple(specs)
        self._working_dir = Path(working_dir) if working_dir is not None else get_application_directory()
        runner = command_runner or SubprocessRunner()
        timeout = download_timeout if download_timeout is not None else IMMUTABLE_CONFIG.upgrade.download_timeout
        self._inventory = inventory or DriverInventory(command_runner=runner)
        self._fetcher = fetcher or ArtifactFetcher(timeout=timeout)
        self._extractor = extractor or PackageExtractor()
        self._stager = stager or DriverStager(command_runner=runner)
        self._registrar = registrar or DriverRegistrar(command_runner=runner)

    def scratch_dir(self, spec: DriverSpec) -> Path:
        return self._working_dir / IMMUTABLE_CONFIG.upgrade.scratch_dirname / spec.slug

    def run(self, *, skip_version_check: bool = False) -> UpgradeReport:
        mode = "skip version check" if skip_version_check else "detect then upgrade"
        _LOGGER.info("Starting printer driver upgrade run (%s) for %d configured driver(s)", mode, len(self._specs))
        selection = self.select_targets(skip_version_check=skip_version_check)
        if not selection.any_registered:
            _LOGGER.error("None of the configured printer drivers are registered on this machine")
            return UpgradeReport(RunStatus.NO_SUPPORTED_DRIVERS, selection.skipped)
        if not selection.targets:
            _LOGGER.info("All registered printer drivers are already current; nothing to upgrade")
        results = list(selection.skipped)
        for target in selection.targets:
            results.append(self.process(target))
        order = {spec.name: index for index, spec in enumerate(self._specs)}
        results.sort(key=lambda result: order.get(result.name, len(order)))
        report = UpgradeReport(RunStatus.COMPLETED, results)
        self._log_summary(report)
        return report

    def select_targets(self, *, skip_version_check: bool = False) -> TargetSelection:
        if skip_version_check:
            for spec in self._specs:
                _LOGGER.info("%s selected: version check skipped", spec.name)
            targets = [UpgradeTarget(spec, "version check skipped") for spec in self._specs]
            return TargetSelection(targets, [], any_registered=bool(targets))
        try:
            installed = self._inventory.list_installed(self._specs)
        except InventoryError as exc:
            _LOGGER.error("Printer driver inventory failed: %s", exc)
            installed = {}
        targets: list[UpgradeTarget] = []
        skipped: list[PipelineResult] = []
        for spec in self._specs:
            info = installed.get(spec.name)
            if info is None:
                _LOGGER.info("%s is not registered; skipping", spec.name)
                skipped.append(PipelineResult(spec.name, PipelineOutcome.SKIPPED_NOT_INSTALLED))
                continue
            target = self._decide(spec, info)
            if target is None:
                skipped.append(
                    PipelineResult(spec.name, PipelineOutcome.SKIPPED_UP_TO_DATE, installed_version=info.version)
                )
            else:
                targets.append(target)
        return TargetSelection(targets, skipped, any_registered=bool(installed))

    def process(self, target: UpgradeTarget) -> PipelineResult:
        spec = target.spec
        scratch = self.scratch_dir(spec)
        archive = scratch / ARCHIVE_NAME
        unpacked = scratch / EXTRACT_DIRNAME
        installed_version = target.installed.version if target.installed else None
        result = PipelineResult(spec.name, PipelineOutcome.FAILED, installed_version=installed_version)
        result.states.append(PipelineState.PENDING)
        _LOGGER.info("Upgrading %s (%s)", spec.name, target.reason)
        stage = "fetch"
        try:
            self._fetcher.fetch(spec.url, archive)
            result.states.append(PipelineState.FETCHED)

            stage = "extract"
            self._extractor.extract(archive, unpacked)
            result.states.append(PipelineState.EXTRACTED)

            stage = "locate"
            description = self._extractor.locate_description_file(unpacked, spec.description_glob, spec.content_pattern)
            result.states.append(PipelineState.DESCRIPTION_LOCATED)
            if description.warning:
                result.warnings.append(description.warning)

            stage = "stage"
            staged = self._stager.stage(description.path)
            result.states.append(PipelineState.STAGED)
            if staged.warning:
                result.warnings.append(staged.warning)

            stage = "register"
            registration = self._registrar.register(spec.name, staged.path)
            result.states.append(PipelineState.REGISTERED)
            result.detail = registration.summary
            result.outcome = PipelineOutcome.UPGRADED
            _LOGGER.info("%s upgraded", spec.name)
        except Exception as exc:  # contained to this target
            result.states.append(PipelineState.FAILED)
            result.stage = stage
            result.detail = str(exc) or exc.__class__.__name__
            _LOGGER.error("%s failed at %s: %s", spec.name, stage, result.detail)
        finally:
            self._cleanup(scratch, result)
        return result

    def _decide(self, spec: DriverSpec, info: InstalledDriverInfo) -> UpgradeTarget | None:
        if info.version is None:
            reason = "no version-bearing file found" if info.version_file is None else "installed version unreadable"
            _LOGGER.info("%s selected: %s", spec.name, reason)
            return UpgradeTarget(spec, reason, info)
        try:
            current = is_at_least(info.version, spec.minimum_version)
        except VersionParseError as exc:
            _LOGGER.warning("%s selected: %s", spec.name, exc)
            return UpgradeTarget(spec, f"unparsable version ({exc})", info)
        if current:
            _LOGGER.info("%s is up to date (%s >= %s)", spec.name, info.version, spec.minimum_version)
            return None
        reason = f"installed {info.version} < {spec.minimum_version}"
        _LOGGER.info("%s selected: %s", spec.name, reason)
        return UpgradeTarget(spec, reason, info)

    def _cleanup(self, scratch: Path, result: PipelineResult) -> None:
        try:
            if scratch.exists():
                shutil.rmtree(scratch)
            _LOGGER.info("Cleaned up %s", scratch)
        except OSError as exc:
            warning = f"Unable to remove {scratch}: {exc}"
            _LOGGER.warning("%s", warning)
            result.warnings.append(warning)
        result.states.append(PipelineState.CLEANED_UP)

    def _log_summary(self, report: UpgradeReport) -> None:
        for result in report.results:
            line = f"{result.name}: {result.outcome.value}"
            if result.stage:
                line += f" at {result.stage} ({result.detail})"
            elif result.detail:
                line += f" ({result.detail})"
            for warning in result.warnings:
                line += f"; warning: {warning}"
            _LOGGER.info("%s", line)
        _LOGGER.info(
            "Run finished: %d upgraded, %d failed, %d skipped",
            sum(1 for result in report.results if result.outcome is PipelineOutcome.UPGRADED),
            len(report.failed),
            sum(1 for result in report.results if result.outcome.value.startswith("skipped")),
        )
