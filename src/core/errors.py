"""Gemlocks exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.types import BatchExtractionReport


class GemlocksError(Exception):
    """Base exception for all Gemlocks failures."""


class GemlocksConfigError(GemlocksError):
    """Raised for invalid runtime configuration."""


class RegistryError(GemlocksError):
    """Raised when the remote tag registry cannot be fetched or decoded."""


class IndexStoreError(GemlocksError):
    """Raised when the local index file cannot be read or written."""


class InvalidVersionError(GemlocksError):
    """Raised when a version number is not of the form ``N.N.N``."""


class ExtractionError(GemlocksError):
    """Base class for per-version extraction failures.

    Attributes:
        version: Version whose extraction failed.
        output: Raw captured container output, when any.
    """

    def __init__(self, message: str, version: str, output: str = "") -> None:
        super().__init__(message)
        self.version = version
        self.output = output


class ContainerRunError(ExtractionError):
    """Raised when a pull or probe run exits non-zero or reports no manifest."""


class ProbeParseError(ExtractionError):
    """Raised when probe output does not follow the wire protocol."""


class BatchExtractionError(GemlocksError):
    """Raised after a batch extraction pass in which any version failed.

    Attributes:
        report: Full batch report including successful outcomes.
    """

    def __init__(self, report: "BatchExtractionReport") -> None:
        failed = report.failed_versions
        super().__init__(
            f"Failed to extract {len(failed)} version(s): {', '.join(failed)}"
        )
        self.report = report

    @property
    def failed_versions(self) -> tuple[str, ...]:
        """Versions that failed during the batch."""
        return self.report.failed_versions
