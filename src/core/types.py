"""Shared typed models.

This module defines immutable value types used by the registry,
extraction, and store layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import cached_property, total_ordering
from pathlib import Path
import re
from typing import Literal

from core.constants import (
    LOCK_FILE_NAME,
    MANIFEST_FILE_NAME,
    VERSION_DIR_PREFIX,
    VERSION_PATTERN,
)

_VERSION_RE = re.compile(VERSION_PATTERN)
_LEADING_DIGITS_RE = re.compile(r"^\d+")

ExtractionStatus = Literal["extracted", "skipped"]


def is_valid_version_number(text: str) -> bool:
    """Return whether text is a strict ``N.N.N`` version number."""
    return _VERSION_RE.fullmatch(text) is not None


def version_sort_key(text: str) -> tuple[int, ...]:
    """Return the numeric sort key of a dot-separated version string.

    Each segment contributes its leading digits, or 0 when it has none,
    so malformed strings sort without raising.
    """
    parts = []
    for segment in text.split("."):
        match = _LEADING_DIGITS_RE.match(segment)
        parts.append(int(match.group(0)) if match else 0)
    return tuple(parts)


@total_ordering
@dataclass(frozen=True)
class VersionIdentity:
    """One published version and its archived artifact locations.

    Attributes:
        number: Dot-separated numeric version, e.g. ``1.9.3``.
        updated_at: Last known index timestamp, when known.
    """

    number: str
    updated_at: str | None = field(default=None, compare=False)

    @cached_property
    def parts(self) -> tuple[int, ...]:
        """Numeric components used for ordering."""
        return version_sort_key(self.number)

    def compare(self, other: "VersionIdentity") -> int:
        """Three-way numeric comparison against another identity."""
        if self.parts < other.parts:
            return -1
        if self.parts > other.parts:
            return 1
        return 0

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VersionIdentity):
            return NotImplemented
        return self.compare(other) < 0

    def with_updated_at(self, updated_at: str | None) -> "VersionIdentity":
        """Return a copy carrying a different index timestamp."""
        return replace(self, updated_at=updated_at)

    @property
    def directory_name(self) -> str:
        return f"{VERSION_DIR_PREFIX}{self.number}"

    def directory_path(self, archive_root: Path) -> Path:
        return archive_root / self.directory_name

    def manifest_path(self, archive_root: Path) -> Path:
        return self.directory_path(archive_root) / MANIFEST_FILE_NAME

    def lock_path(self, archive_root: Path) -> Path:
        return self.directory_path(archive_root) / LOCK_FILE_NAME

    def exists_locally(self, archive_root: Path) -> bool:
        """Return whether both archived artifact files are regular files."""
        return (
            self.manifest_path(archive_root).is_file()
            and self.lock_path(archive_root).is_file()
        )

    def to_dict(self) -> dict[str, str | None]:
        return {"version": self.number, "updated_at": self.updated_at}


@dataclass(frozen=True)
class ProcessResult:
    """Captured result of one container runtime invocation.

    Attributes:
        exit_code: Process exit status.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    exit_code: int
    stdout: str
    stderr: str = ""


@dataclass(frozen=True)
class ProbeResult:
    """Artifact pair parsed out of probe script output.

    Attributes:
        source_dir: Directory inside the image where the manifest was found.
        manifest_text: Trimmed manifest content.
        lock_text: Trimmed resolved-lock content.
    """

    source_dir: str
    manifest_text: str
    lock_text: str


@dataclass(frozen=True)
class ExtractionOutcome:
    """Result of one per-version extraction request.

    Attributes:
        version: Requested version number.
        status: Whether files were written or the version was already archived.
        directory: Archive directory of the version.
        source_dir: Directory reported by the probe, for fresh extractions.
    """

    version: str
    status: ExtractionStatus
    directory: Path
    source_dir: str | None = None


@dataclass(frozen=True)
class BatchExtractionReport:
    """Collected outcomes of one sequential batch extraction pass.

    Attributes:
        outcomes: Per-version outcomes of successful requests.
        failed_versions: Versions whose extraction raised, in catalog order.
    """

    outcomes: tuple[ExtractionOutcome, ...]
    failed_versions: tuple[str, ...]

    @property
    def extracted_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "extracted")

    @property
    def skipped_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "skipped")


@dataclass(frozen=True)
class IndexSummary:
    """Summary metadata of a persisted local index.

    Attributes:
        local_count: Versions archived locally.
        remote_count: Versions published upstream at generation time.
        latest_version: Numerically highest local version.
        missing_versions: Remote versions absent from the archive.
        generated_at: Generation timestamp stored in the index.
        index_path: Location of the index file.
    """

    local_count: int
    remote_count: int
    latest_version: str | None
    missing_versions: tuple[str, ...]
    generated_at: str | None
    index_path: Path


@dataclass(frozen=True)
class CleanupReport:
    """Result of one local image cleanup pass.

    Attributes:
        removed: Image references passed to the runtime for removal.
        kept: Image reference retained for layer caching.
        batch_count: Number of removal invocations.
        failed_batches: Number of invocations that reported failure.
    """

    removed: tuple[str, ...] = ()
    kept: str | None = None
    batch_count: int = 0
    failed_batches: int = 0
