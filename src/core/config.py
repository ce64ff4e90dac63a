"""Runtime configuration model for Gemlocks.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
from pathlib import Path

from core.constants import (
    DEFAULT_ARCHIVE_ROOT,
    DEFAULT_CLEANUP_BATCH_SIZE,
    DEFAULT_CONTAINER_BINARY,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_IMAGE_REPOSITORY,
    DEFAULT_REGISTRY_URL,
    INDEX_FILE_NAME,
)
from core.errors import GemlocksConfigError


@dataclass(frozen=True)
class GemlocksConfig:
    """Validated runtime configuration.

    Attributes:
        archive_root: Directory holding one ``v<number>`` folder per version.
        index_path: Location of the YAML index file.
        image_repository: Registry repository whose tags are cataloged.
        registry_url: Base URL of the registry tag API.
        container_binary: Container runtime executable.
        http_timeout_seconds: Per-request registry timeout.
        run_timeout_seconds: Optional bound on one probe container run.
        cleanup_batch_size: Images removed per runtime invocation.
    """

    archive_root: Path
    index_path: Path
    image_repository: str = DEFAULT_IMAGE_REPOSITORY
    registry_url: str = DEFAULT_REGISTRY_URL
    container_binary: str = DEFAULT_CONTAINER_BINARY
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    run_timeout_seconds: float | None = None
    cleanup_batch_size: int = DEFAULT_CLEANUP_BATCH_SIZE

    @classmethod
    def from_env(cls) -> "GemlocksConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            GemlocksConfigError: If environment values are invalid.
        """
        archive_root_value = os.getenv("GEMLOCKS_ARCHIVE_ROOT", str(DEFAULT_ARCHIVE_ROOT))
        archive_root = Path(archive_root_value).expanduser().resolve()
        index_path_value = os.getenv("GEMLOCKS_INDEX_PATH")
        index_path = (
            Path(index_path_value).expanduser().resolve()
            if index_path_value
            else archive_root / INDEX_FILE_NAME
        )
        run_timeout_value = os.getenv("GEMLOCKS_RUN_TIMEOUT")
        return cls(
            archive_root=archive_root,
            index_path=index_path,
            image_repository=os.getenv("GEMLOCKS_IMAGE", DEFAULT_IMAGE_REPOSITORY),
            registry_url=os.getenv("GEMLOCKS_REGISTRY_URL", DEFAULT_REGISTRY_URL).rstrip("/"),
            container_binary=os.getenv("GEMLOCKS_CONTAINER_BIN", DEFAULT_CONTAINER_BINARY),
            http_timeout_seconds=_parse_positive_float(
                "GEMLOCKS_HTTP_TIMEOUT",
                os.getenv("GEMLOCKS_HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT_SECONDS)),
            ),
            run_timeout_seconds=(
                _parse_positive_float("GEMLOCKS_RUN_TIMEOUT", run_timeout_value)
                if run_timeout_value
                else None
            ),
            cleanup_batch_size=_parse_batch_size(
                os.getenv("GEMLOCKS_CLEANUP_BATCH_SIZE", str(DEFAULT_CLEANUP_BATCH_SIZE))
            ),
        )

    def with_archive_root(self, archive_root: Path) -> "GemlocksConfig":
        """Return a copy rooted elsewhere, moving a default index path along.

        Args:
            archive_root: New archive root directory.

        Returns:
            Updated config object.
        """
        index_path = self.index_path
        if index_path == self.archive_root / INDEX_FILE_NAME:
            index_path = archive_root / INDEX_FILE_NAME
        return replace(self, archive_root=archive_root, index_path=index_path)


def _parse_positive_float(variable: str, raw_value: str) -> float:
    """Parse a positive float environment value.

    Args:
        variable: Environment variable name, for error messages.
        raw_value: Raw string from environment.

    Returns:
        Parsed positive float.

    Raises:
        GemlocksConfigError: If value is not a positive number.
    """
    try:
        value = float(raw_value)
    except ValueError as error:
        raise GemlocksConfigError(
            f"Invalid {variable} value: expected number of seconds, got '{raw_value}'. "
            f"Set {variable} to a positive number."
        ) from error
    if value <= 0:
        raise GemlocksConfigError(
            f"Invalid {variable} value: expected a positive number, got '{raw_value}'."
        )
    return value


def _parse_batch_size(raw_value: str) -> int:
    """Parse the cleanup batch size environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed batch size, at least one.

    Raises:
        GemlocksConfigError: If value cannot be parsed into a positive int.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise GemlocksConfigError(
            "Invalid GEMLOCKS_CLEANUP_BATCH_SIZE value: "
            f"expected integer, got '{raw_value}'. "
            "Set GEMLOCKS_CLEANUP_BATCH_SIZE to a numeric value."
        ) from error
    if value < 1:
        raise GemlocksConfigError(
            f"Invalid GEMLOCKS_CLEANUP_BATCH_SIZE value: expected >= 1, got {value}."
        )
    return value
