"""Python SDK for archive operations.

This module wires the catalog, extractor, reconciler, and janitor from
one configuration object and exposes them as high-level calls.
"""

from __future__ import annotations

import requests

from core.config import GemlocksConfig
from core.types import (
    BatchExtractionReport,
    CleanupReport,
    ExtractionOutcome,
    IndexSummary,
)
from extract.container_runtime import ContainerRuntime, DockerRuntime
from extract.extractor import ContainerExtractor
from extract.image_janitor import ImageJanitor
from registry.remote_catalog import RemoteCatalog
from store.local_index import LocalIndex
from store.reconciler import Reconciler


class GemlocksClient:
    """Primary SDK entry point for archive workflows."""

    def __init__(
        self,
        config: GemlocksConfig | None = None,
        runtime: ContainerRuntime | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            runtime: Optional container runtime; Docker CLI when omitted.
            session: Optional HTTP session for registry calls.
        """
        self._config = config or GemlocksConfig.from_env()
        self._runtime = runtime or DockerRuntime(self._config.container_binary)
        self._catalog = RemoteCatalog(self._config, session=session)
        self._extractor = ContainerExtractor(self._config, self._runtime, self._catalog)

    @property
    def config(self) -> GemlocksConfig:
        return self._config

    def list_remote_versions(self) -> list[str]:
        """Return published versions in ascending numeric order.

        Raises:
            RegistryError: If the registry cannot be read.
        """
        return self._catalog.fetch_all_versions()

    def extract_version(self, version: str) -> ExtractionOutcome:
        """Archive one version's artifact pair.

        Args:
            version: Version number.

        Returns:
            Extraction outcome.

        Raises:
            ExtractionError: If the container run or parsing fails.
        """
        return self._extractor.extract_version(version)

    def extract_all(self, cleanup_after: bool = False) -> BatchExtractionReport:
        """Archive every published version.

        Args:
            cleanup_after: Prune stale local images after the pass, even
                when some versions failed.

        Returns:
            Batch report.

        Raises:
            BatchExtractionError: If any version failed.
        """
        try:
            return self._extractor.extract_all()
        finally:
            if cleanup_after:
                self.cleanup_images()

    def generate_index(self) -> IndexSummary:
        """Reconcile the archive with the registry and rewrite the index."""
        index = LocalIndex(self._config.index_path)
        return Reconciler(self._config, self._catalog, index).generate_index()

    def cleanup_images(self) -> CleanupReport:
        """Remove stale local images, keeping the newest one."""
        return ImageJanitor(self._config, self._runtime).cleanup_images()

    def read_status(self) -> IndexSummary:
        """Summarize the index file as stored, without network access."""
        return LocalIndex(self._config.index_path).summary()
