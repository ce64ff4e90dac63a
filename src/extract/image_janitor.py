"""Local image cleanup.

This module removes stale local images of the cataloged repository in
small batches, always keeping the newest one so later pulls reuse layers.
"""

from __future__ import annotations

from core.config import GemlocksConfig
from core.logging_config import get_logger
from core.types import CleanupReport, version_sort_key
from extract.container_runtime import ContainerRuntime

_LOGGER = get_logger(__name__)


class ImageJanitor:
    """Batch remover for local repository images."""

    def __init__(self, config: GemlocksConfig, runtime: ContainerRuntime) -> None:
        self._config = config
        self._runtime = runtime

    def cleanup_images(self) -> CleanupReport:
        """Remove all but the newest numeric-tagged local image.

        Returns:
            Removed and kept image references with batch counts.
        """
        repository = self._config.image_repository
        tags = sorted(
            (tag for tag in self._runtime.list_images(repository) if tag[:1].isdigit()),
            key=lambda tag: (version_sort_key(tag), tag),
        )
        images = [f"{repository}:{tag}" for tag in tags]
        if len(images) <= 1:
            _LOGGER.info("image_cleanup_skipped", repository=repository, image_count=len(images))
            return CleanupReport(kept=images[0] if images else None)
        to_remove = images[:-1]
        batches = _batched(to_remove, self._config.cleanup_batch_size)
        failed_batches = 0
        for batch_number, batch in enumerate(batches, start=1):
            _LOGGER.info(
                "image_cleanup_batch",
                batch=batch_number,
                batch_count=len(batches),
                images=batch,
            )
            if not self._runtime.remove_images(batch):
                failed_batches += 1
                _LOGGER.warning("image_cleanup_batch_failed", batch=batch_number, images=batch)
        _LOGGER.info("image_kept_for_cache", image=images[-1])
        return CleanupReport(
            removed=tuple(to_remove),
            kept=images[-1],
            batch_count=len(batches),
            failed_batches=failed_batches,
        )


def _batched(items: list[str], size: int) -> list[list[str]]:
    return [items[start : start + size] for start in range(0, len(items), size)]
