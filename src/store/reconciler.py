"""Archive reconciliation.

This module merges the archive directory tree and the remote catalog
into the local index, preserving timestamps of already indexed versions.
"""

from __future__ import annotations

from datetime import datetime, timezone

from core.config import GemlocksConfig
from core.constants import TIMESTAMP_FORMAT, VERSION_DIR_PREFIX
from core.logging_config import get_logger
from core.types import IndexSummary, VersionIdentity, is_valid_version_number
from registry.remote_catalog import RemoteCatalog
from store.local_index import LocalIndex

_LOGGER = get_logger(__name__)


class Reconciler:
    """Rebuilds the local index from disk state and the remote catalog."""

    def __init__(
        self,
        config: GemlocksConfig,
        catalog: RemoteCatalog,
        index: LocalIndex,
    ) -> None:
        self._config = config
        self._catalog = catalog
        self._index = index

    def scan_local_versions(self) -> list[VersionIdentity]:
        """List archived versions whose artifact pair is complete.

        Returns:
            Identities sorted by version, without timestamps.
        """
        archive_root = self._config.archive_root
        if not archive_root.is_dir():
            return []
        identities: list[VersionIdentity] = []
        for directory in archive_root.glob(f"{VERSION_DIR_PREFIX}*"):
            number = directory.name[len(VERSION_DIR_PREFIX):]
            if not directory.is_dir() or not is_valid_version_number(number):
                continue
            identity = VersionIdentity(number)
            if identity.exists_locally(archive_root):
                identities.append(identity)
            else:
                _LOGGER.warning(
                    "partial_artifact_pair",
                    version=number,
                    directory=str(directory),
                    reason="missing Gemfile or Gemfile.lock",
                )
        return sorted(identities)

    def generate_index(self) -> IndexSummary:
        """Reconcile and persist the index.

        Returns:
            Summary of the written index.

        Raises:
            RegistryError: If the remote catalog cannot be fetched.
            IndexStoreError: If the index cannot be written.
        """
        remote_versions = self._catalog.fetch_all_versions()
        local_versions = [self._stamp(identity) for identity in self.scan_local_versions()]
        local_numbers = {identity.number for identity in local_versions}
        for identity in local_versions:
            self._index.add_version(identity)
        for number in self._index.retain_only(local_numbers):
            _LOGGER.warning("index_entry_dropped", version=number, reason="artifacts not on disk")
        missing = [number for number in remote_versions if number not in local_numbers]
        summary = self._index.save(len(remote_versions), missing)
        _LOGGER.info(
            "index_generated",
            local_count=summary.local_count,
            remote_count=summary.remote_count,
            missing_count=len(missing),
        )
        return summary

    def _stamp(self, identity: VersionIdentity) -> VersionIdentity:
        existing = self._index.get_updated_at(identity.number)
        if existing is not None:
            return identity.with_updated_at(existing)
        modified = identity.directory_path(self._config.archive_root).stat().st_mtime
        timestamp = datetime.fromtimestamp(modified, tz=timezone.utc).strftime(TIMESTAMP_FORMAT)
        return identity.with_updated_at(timestamp)
