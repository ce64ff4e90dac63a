"""Core constants used across Gemlocks modules.

This module centralizes archive, registry, and probe constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_ARCHIVE_ROOT = Path(".")
INDEX_FILE_NAME = "index.yaml"
VERSION_DIR_PREFIX = "v"
MANIFEST_FILE_NAME = "Gemfile"
LOCK_FILE_NAME = "Gemfile.lock"
DEFAULT_IMAGE_REPOSITORY = "metanorma/metanorma"
DEFAULT_REGISTRY_URL = "https://registry.hub.docker.com"
REGISTRY_PAGE_SIZE = 100
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
DEFAULT_CONTAINER_BINARY = "docker"
DEFAULT_CLEANUP_BATCH_SIZE = 5
VERSION_PATTERN = r"^\d+\.\d+\.\d+$"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
