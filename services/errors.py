"""Failure taxonomy for the driver upgrade pipeline."""
from __future__ import annotations


class DriverUpgradeError(RuntimeError):
    """Base class for pipeline failures; ``stage`` names the step that raised."""

    stage = "upgrade"


class VersionParseError(DriverUpgradeError, ValueError):
    stage = "version-check"


class InventoryError(DriverUpgradeError):
    stage = "inventory"


class NetworkError(DriverUpgradeError):
    stage = "fetch"


class ExtractionError(DriverUpgradeError):
    stage = "extract"


class DescriptionNotFound(DriverUpgradeError):
    stage = "locate"


class StagingFailure(DriverUpgradeError):
    stage = "stage"

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class StagedPathNotFound(DriverUpgradeError):
    stage = "stage"


class RegistrationFailure(DriverUpgradeError):
    stage = "register"

    def __init__(self, message: str, *, registered_after: bool | None = None) -> None:
        super().__init__(message)
        self.registered_after = registered_after
