"""Public SDK surface for Gemlocks.

This module provides a stable import path for library users.
It re-exports the primary client, configuration, and result models.
"""

from __future__ import annotations

from core.config import GemlocksConfig
from core.errors import (
    BatchExtractionError,
    ContainerRunError,
    ExtractionError,
    GemlocksError,
    InvalidVersionError,
    ProbeParseError,
    RegistryError,
)
from core.types import (
    BatchExtractionReport,
    CleanupReport,
    ExtractionOutcome,
    IndexSummary,
    VersionIdentity,
)
from extract.container_runtime import ContainerRuntime, DockerRuntime
from store.archive_sdk import GemlocksClient

__all__ = [
    "BatchExtractionError",
    "BatchExtractionReport",
    "CleanupReport",
    "ContainerRunError",
    "ContainerRuntime",
    "DockerRuntime",
    "ExtractionError",
    "ExtractionOutcome",
    "GemlocksClient",
    "GemlocksConfig",
    "GemlocksError",
    "IndexSummary",
    "InvalidVersionError",
    "ProbeParseError",
    "RegistryError",
    "VersionIdentity",
]
