"""Paginated registry tag catalog.

This module walks the registry tag API page by page and keeps only
strict ``N.N.N`` version tags, returned in numeric order.
"""

from __future__ import annotations

from typing import Any

import requests

from core.config import GemlocksConfig
from core.constants import REGISTRY_PAGE_SIZE
from core.errors import RegistryError
from core.logging_config import get_logger
from core.types import is_valid_version_number, version_sort_key

_LOGGER = get_logger(__name__)


class RemoteCatalog:
    """Registry-backed list of published versions."""

    def __init__(
        self,
        config: GemlocksConfig,
        session: requests.Session | None = None,
    ) -> None:
        """Create a catalog client.

        Args:
            config: Runtime configuration.
            session: Optional HTTP session, mainly for tests.
        """
        self._config = config
        self._session = session or requests.Session()

    @property
    def first_page_url(self) -> str:
        return (
            f"{self._config.registry_url}/v2/repositories/"
            f"{self._config.image_repository}/tags?page_size={REGISTRY_PAGE_SIZE}"
        )

    def fetch_all_versions(self) -> list[str]:
        """Fetch every published version tag.

        Returns:
            Strict version numbers sorted in ascending numeric order.

        Raises:
            RegistryError: If any page fails to download or decode.
        """
        versions: list[str] = []
        url: str | None = self.first_page_url
        page_count = 0
        while url:
            payload = self._fetch_page(url)
            names = _result_names(payload, url)
            versions.extend(name for name in names if is_valid_version_number(name))
            page_count += 1
            _LOGGER.debug("registry_page_fetched", url=url, result_count=len(names))
            url = _next_page_url(payload, url)
        versions.sort(key=version_sort_key)
        _LOGGER.info(
            "registry_versions_fetched",
            repository=self._config.image_repository,
            version_count=len(versions),
            page_count=page_count,
        )
        return versions

    def _fetch_page(self, url: str) -> dict[str, Any]:
        try:
            response = self._session.get(url, timeout=self._config.http_timeout_seconds)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as error:
            raise RegistryError(
                f"Failed to fetch registry tags from {url}: {error}. "
                "Check network access and the GEMLOCKS_REGISTRY_URL setting."
            ) from error
        except ValueError as error:
            raise RegistryError(
                f"Failed to decode registry response from {url}: {error}."
            ) from error
        if not isinstance(payload, dict):
            raise RegistryError(
                f"Unexpected registry response from {url}: expected JSON object at top level."
            )
        return payload


def _result_names(payload: dict[str, Any], url: str) -> list[str]:
    """Extract tag names from one page payload.

    Raises:
        RegistryError: If the page lacks a ``results`` list of named entries.
    """
    results = payload.get("results")
    if not isinstance(results, list):
        raise RegistryError(f"Unexpected registry response from {url}: missing 'results' list.")
    names: list[str] = []
    for result in results:
        if not isinstance(result, dict) or not isinstance(result.get("name"), str):
            raise RegistryError(
                f"Unexpected registry response from {url}: result entry without a 'name'."
            )
        names.append(result["name"])
    return names


def _next_page_url(payload: dict[str, Any], url: str) -> str | None:
    next_url = payload.get("next")
    if next_url is None:
        return None
    if not isinstance(next_url, str):
        raise RegistryError(f"Unexpected registry response from {url}: 'next' is not a string.")
    return next_url or None
