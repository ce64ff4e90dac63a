"""Per-version artifact extraction.

This module pulls one image, runs the probe script, parses the result,
and archives the manifest and lock file. Batch extraction isolates
failures per version and reports them together at the end.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from core.config import GemlocksConfig
from core.errors import (
    BatchExtractionError,
    ContainerRunError,
    GemlocksError,
    InvalidVersionError,
)
from core.logging_config import get_logger
from core.types import (
    BatchExtractionReport,
    ExtractionOutcome,
    ProbeResult,
    ProcessResult,
    VersionIdentity,
    is_valid_version_number,
)
from extract.container_runtime import ContainerRuntime
from extract.probe_protocol import PROBE_SCRIPT, check_probe_run, parse_probe_output
from registry.remote_catalog import RemoteCatalog

_LOGGER = get_logger(__name__)


class ContainerExtractor:
    """Archives artifact pairs from published container images."""

    def __init__(
        self,
        config: GemlocksConfig,
        runtime: ContainerRuntime,
        catalog: RemoteCatalog,
    ) -> None:
        """Create an extractor.

        Args:
            config: Runtime configuration.
            runtime: Container runtime used for pull, run, and remove.
            catalog: Remote catalog consulted by batch extraction.
        """
        self._config = config
        self._runtime = runtime
        self._catalog = catalog

    def image_ref(self, version: str) -> str:
        return f"{self._config.image_repository}:{version}"

    def extract_version(self, version: str) -> ExtractionOutcome:
        """Extract one version unless it is already archived.

        Args:
            version: Version number to extract.

        Returns:
            Outcome describing whether files were written.

        Raises:
            InvalidVersionError: If the version is not of the form N.N.N.
            ContainerRunError: If pull or probe run fails.
            ProbeParseError: If probe output violates the wire protocol.
        """
        if not is_valid_version_number(version):
            raise InvalidVersionError(
                f"Invalid version number {version!r}; expected digits like 1.2.3."
            )
        identity = VersionIdentity(version)
        archive_root = self._config.archive_root
        directory = identity.directory_path(archive_root)
        if identity.exists_locally(archive_root):
            _LOGGER.info("version_skipped", version=version, directory=str(directory))
            return ExtractionOutcome(version=version, status="skipped", directory=directory)
        image_ref = self.image_ref(version)
        try:
            self._pull(version, image_ref)
            result = self._run_probe(version, image_ref)
            check_probe_run(version, result)
            probe = parse_probe_output(version, result.stdout)
            _write_artifacts(identity, archive_root, probe)
        finally:
            self._remove(image_ref)
        _LOGGER.info(
            "version_extracted",
            version=version,
            directory=str(directory),
            source_dir=probe.source_dir,
        )
        return ExtractionOutcome(
            version=version,
            status="extracted",
            directory=directory,
            source_dir=probe.source_dir,
        )

    def extract_all(self) -> BatchExtractionReport:
        """Extract every remote version sequentially.

        Returns:
            Report of a batch in which every version succeeded or was skipped.

        Raises:
            RegistryError: If the remote catalog cannot be fetched.
            BatchExtractionError: If any version failed; carries the full report.
        """
        versions = self._catalog.fetch_all_versions()
        _LOGGER.info("batch_extraction_started", version_count=len(versions))
        outcomes: list[ExtractionOutcome] = []
        failed_versions: list[str] = []
        for version in versions:
            try:
                outcomes.append(self.extract_version(version))
            except (GemlocksError, OSError) as error:
                _LOGGER.error("version_extraction_failed", version=version, error=str(error))
                failed_versions.append(version)
        report = BatchExtractionReport(
            outcomes=tuple(outcomes),
            failed_versions=tuple(failed_versions),
        )
        _LOGGER.info(
            "batch_extraction_finished",
            extracted=report.extracted_count,
            skipped=report.skipped_count,
            failed=len(failed_versions),
        )
        if failed_versions:
            raise BatchExtractionError(report)
        return report

    def _pull(self, version: str, image_ref: str) -> None:
        exit_code = self._runtime.pull_image(image_ref)
        if exit_code != 0:
            raise ContainerRunError(
                f"Failed to pull {image_ref} (exit status {exit_code}). "
                "Check that the tag exists and the container runtime is reachable.",
                version=version,
            )

    def _run_probe(self, version: str, image_ref: str) -> ProcessResult:
        timeout = self._config.run_timeout_seconds
        try:
            return self._runtime.run_with_script(image_ref, PROBE_SCRIPT, timeout_seconds=timeout)
        except subprocess.TimeoutExpired as error:
            raise ContainerRunError(
                f"Probe run for {image_ref} exceeded {timeout} seconds. "
                "Raise GEMLOCKS_RUN_TIMEOUT or investigate the image.",
                version=version,
                output=_decode_partial_output(error.stdout),
            ) from error
        except UnicodeError as error:
            raise ContainerRunError(
                f"Probe output for {image_ref} could not be decoded: {error}.",
                version=version,
            ) from error
        except OSError as error:
            raise ContainerRunError(
                f"Failed to start probe run for {image_ref}: {error}.",
                version=version,
            ) from error

    def _remove(self, image_ref: str) -> None:
        if not self._runtime.remove_images([image_ref]):
            _LOGGER.warning("image_remove_failed", image=image_ref)


def _write_artifacts(identity: VersionIdentity, archive_root: Path, probe: ProbeResult) -> None:
    """Write the artifact pair, creating the version directory on demand."""
    identity.directory_path(archive_root).mkdir(parents=True, exist_ok=True)
    identity.manifest_path(archive_root).write_text(
        probe.manifest_text + "\n", encoding="utf-8", errors="surrogateescape", newline=""
    )
    identity.lock_path(archive_root).write_text(
        probe.lock_text + "\n", encoding="utf-8", errors="surrogateescape", newline=""
    )


def _decode_partial_output(output: bytes | str | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output
