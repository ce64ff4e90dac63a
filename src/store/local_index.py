"""Durable YAML index of archived versions.

This module loads, merges, and atomically rewrites ``index.yaml``.
Existing ``updated_at`` values are carried through untouched apart from
UTC normalization, so repeated saves are stable.
"""

from __future__ import annotations

from datetime import datetime, timezone
import os
from pathlib import Path
import tempfile
from typing import Any, Iterable

import yaml

from core.constants import TIMESTAMP_FORMAT
from core.errors import IndexStoreError
from core.logging_config import get_logger
from core.types import IndexSummary, VersionIdentity, version_sort_key

_LOGGER = get_logger(__name__)


class LocalIndex:
    """In-memory view of the index file with full-rewrite persistence."""

    def __init__(self, index_path: Path) -> None:
        """Create an index, loading the file when it exists.

        Args:
            index_path: Location of ``index.yaml``.

        Raises:
            IndexStoreError: If an existing file cannot be parsed.
        """
        self._path = index_path
        self._versions: dict[str, str | None] = {}
        self._metadata: dict[str, Any] = {}
        self._missing_versions: list[str] = []
        if index_path.is_file():
            self.load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def versions(self) -> dict[str, str | None]:
        return dict(self._versions)

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    @property
    def missing_versions(self) -> list[str]:
        return list(self._missing_versions)

    def load(self) -> None:
        """Replace in-memory state with the contents of the index file.

        Raises:
            IndexStoreError: If the file is unreadable or malformed.
        """
        payload = _read_yaml(self._path)
        metadata = payload.get("metadata") or {}
        missing = payload.get("missing_versions") or []
        entries = payload.get("versions") or []
        if not isinstance(metadata, dict) or not isinstance(missing, list):
            raise IndexStoreError(
                f"Malformed index at {self._path}: 'metadata' must be a mapping "
                "and 'missing_versions' a list. Delete the file and run 'gemlocks index'."
            )
        if not isinstance(entries, list):
            raise IndexStoreError(f"Malformed index at {self._path}: 'versions' must be a list.")
        versions: dict[str, str | None] = {}
        for entry in entries:
            if not isinstance(entry, dict) or entry.get("version") is None:
                raise IndexStoreError(
                    f"Malformed index at {self._path}: version entry without 'version' key."
                )
            versions[str(entry["version"])] = _stored_timestamp(entry.get("updated_at"))
        self._metadata = metadata
        self._missing_versions = [str(version) for version in missing]
        self._versions = versions

    def get_updated_at(self, version_number: str) -> str | None:
        return self._versions.get(version_number)

    def add_version(self, version: VersionIdentity) -> None:
        """Insert or overwrite one version entry with its timestamp."""
        self._versions[version.number] = version.updated_at

    def retain_only(self, version_numbers: Iterable[str]) -> list[str]:
        """Drop entries not listed; return the dropped version numbers."""
        keep = set(version_numbers)
        dropped = [number for number in self._versions if number not in keep]
        for number in dropped:
            del self._versions[number]
        return sorted(dropped, key=version_sort_key)

    def latest_version(self) -> str | None:
        if not self._versions:
            return None
        return max(self._versions, key=version_sort_key)

    def version_count(self) -> int:
        return len(self._versions)

    def to_payload(
        self,
        remote_count: int,
        missing_versions: list[str],
        generated_at: datetime | None = None,
    ) -> dict[str, Any]:
        """Build the full index document.

        Args:
            remote_count: Number of versions published upstream.
            missing_versions: Remote versions absent locally.
            generated_at: Generation instant; now when omitted.

        Returns:
            Mapping in index file schema order.
        """
        generated = generated_at or datetime.now(timezone.utc)
        versions = [
            {"version": number, "updated_at": normalize_timestamp(self._versions[number])}
            for number in sorted(self._versions, key=version_sort_key)
        ]
        return {
            "metadata": {
                "generated_at": generated.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT),
                "local_count": self.version_count(),
                "remote_count": remote_count,
                "latest_version": self.latest_version(),
            },
            "missing_versions": list(missing_versions),
            "versions": versions,
        }

    def save(self, remote_count: int, missing_versions: list[str]) -> IndexSummary:
        """Atomically rewrite the index file with fresh metadata.

        Args:
            remote_count: Number of versions published upstream.
            missing_versions: Remote versions absent locally.

        Returns:
            Summary of the written index.

        Raises:
            IndexStoreError: If the file cannot be written.
        """
        payload = self.to_payload(remote_count, missing_versions)
        _write_yaml_atomic(self._path, payload)
        self._metadata = payload["metadata"]
        self._missing_versions = list(missing_versions)
        self._versions = {entry["version"]: entry["updated_at"] for entry in payload["versions"]}
        _LOGGER.info(
            "index_saved",
            path=str(self._path),
            local_count=payload["metadata"]["local_count"],
            remote_count=remote_count,
        )
        return self.summary()

    def summary(self) -> IndexSummary:
        """Summarize the index as last loaded or saved."""
        remote_count = self._metadata.get("remote_count")
        generated_at = self._metadata.get("generated_at")
        try:
            remote_total = int(remote_count) if remote_count is not None else 0
        except (TypeError, ValueError) as error:
            raise IndexStoreError(
                f"Invalid remote_count {remote_count!r} in {self._path}. "
                "Regenerate the index with the index command."
            ) from error
        return IndexSummary(
            local_count=self.version_count(),
            remote_count=remote_total,
            latest_version=self.latest_version(),
            missing_versions=tuple(self._missing_versions),
            generated_at=normalize_timestamp(generated_at),
            index_path=self._path,
        )


def normalize_timestamp(value: object) -> str | None:
    """Render a timestamp as UTC ISO-8601, keeping unparseable text verbatim.

    Naive values are taken to be UTC already.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        try:
            moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return text
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _stored_timestamp(value: object) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return normalize_timestamp(value)


def _read_yaml(index_path: Path) -> dict[str, Any]:
    """Read the index document, treating an empty file as an empty index.

    Raises:
        IndexStoreError: If the file cannot be read or is not a YAML mapping.
    """
    try:
        payload = yaml.safe_load(index_path.read_text(encoding="utf-8"))
    except OSError as error:
        raise IndexStoreError(f"Failed to read index at {index_path}: {error}.") from error
    except yaml.YAMLError as error:
        raise IndexStoreError(
            f"Failed to parse index at {index_path}: {error}. "
            "Fix the YAML or delete the file and run 'gemlocks index'."
        ) from error
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise IndexStoreError(
            f"Malformed index at {index_path}: expected a YAML mapping at top level."
        )
    return payload


def _write_yaml_atomic(index_path: Path, payload: dict[str, Any]) -> None:
    """Write through a sibling temporary file and rename over the target.

    Raises:
        IndexStoreError: If writing or renaming fails.
    """
    body = yaml.safe_dump(payload, sort_keys=False, default_flow_style=False)
    temp_name: str | None = None
    try:
        index_path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=index_path.parent,
            prefix=f".{index_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            temp_name = handle.name
            handle.write(body)
        os.replace(temp_name, index_path)
    except OSError as error:
        if temp_name is not None and os.path.exists(temp_name):
            os.unlink(temp_name)
        raise IndexStoreError(f"Failed to write index at {index_path}: {error}.") from error
