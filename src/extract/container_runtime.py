"""Container runtime boundary.

This module hides the container CLI behind a narrow interface so the
extraction flow can be exercised against fakes in tests.
"""

from __future__ import annotations

import subprocess
from typing import Protocol, Sequence
from uuid import uuid4

from core.logging_config import get_logger
from core.types import ProcessResult

_LOGGER = get_logger(__name__)
_IMAGE_LIST_FORMAT = "{{.Repository}}:{{.Tag}}"


class ContainerRuntime(Protocol):
    """Operations the extraction pipeline needs from a container runtime."""

    def pull_image(self, image_ref: str) -> int:
        """Pull one image and return the exit status."""

    def run_with_script(
        self,
        image_ref: str,
        script: str,
        timeout_seconds: float | None = None,
    ) -> ProcessResult:
        """Run a throwaway container with an inline shell entrypoint.

        Output is captured as bytes and decoded as UTF-8 with
        ``surrogateescape``, so undecodable bytes and CRLF line endings
        survive a later ``encode("utf-8", "surrogateescape")``.

        Args:
            image_ref: ``repository:tag`` reference.
            script: Shell script passed to ``sh -c``.
            timeout_seconds: Optional wall-clock bound for the run.

        Returns:
            Exit status with captured stdout and stderr.

        Raises:
            subprocess.TimeoutExpired: If the run exceeds the timeout. The
                named container is force-removed before re-raising.
            OSError: If the runtime binary cannot be executed.
        """
        container_name = f"gemlocks-run-{uuid4().hex[:12]}"
        command = [
            self._binary,
            "run",
            "--rm",
            "--name",
            container_name,
            "--entrypoint",
            "sh",
            image_ref,
            "-c",
            script,
        ]
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                check=False,
                timeout=timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            self._remove_container(container_name)
            raise
        return ProcessResult(
            exit_code=completed.returncode,
            stdout=decode_output(completed.stdout),
            stderr=decode_output(completed.stderr),
        )

    def _remove_container(self, container_name: str) -> None:
        _LOGGER.warning("container_run_timed_out", container=container_name)
        try:
            completed = subprocess.run(
                [self._binary, "rm", "-f", container_name],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError as error:
            _LOGGER.warning("container_remove_failed", container=container_name, error=str(error))
            return
        if completed.returncode != 0:
            _LOGGER.warning(
                "container_remove_failed",
                container=container_name,
                exit_code=completed.returncode,
            )

    def remove_images(self, image_refs: Sequence[str]) -> bool:
        """Force-remove images, discarding runtime output.

        Args:
            image_refs: Image references to remove in one invocation.

        Returns:
            True when the runtime exited zero.
        """
        if not image_refs:
            return True
        try:
            completed = subprocess.run(
                [self._binary, "rmi", "-f", *image_refs],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError as error:
            _LOGGER.warning("image_remove_unavailable", images=list(image_refs), error=str(error))
            return False
        return completed.returncode == 0

    def list_images(self, repository: str) -> list[str]:
        """List local tags of one repository.

        Args:
            repository: Repository name without tag.

        Returns:
            Tags present locally, in runtime output order. Untagged
            images and other repositories are dropped.
        """
        try:
            completed = subprocess.run(
                [self._binary, "images", "--format", _IMAGE_LIST_FORMAT, repository],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as error:
            _LOGGER.warning("image_list_unavailable", repository=repository, error=str(error))
            return []
        if completed.returncode != 0:
            _LOGGER.warning(
                "image_list_failed",
                repository=repository,
                exit_code=completed.returncode,
                stderr=completed.stderr.strip(),
            )
            return []
        return parse_image_list(completed.stdout, repository)


def parse_image_list(output: str, repository: str) -> list[str]:
    """Parse ``repository:tag`` lines into tags of one repository."""
    tags: list[str] = []
    for line in output.splitlines():
        name, separator, tag = line.strip().rpartition(":")
        if not separator or name != repository or not tag or tag == "<none>":
            continue
        tags.append(tag)
    return tags


def decode_output(output: bytes | str | None) -> str:
    """Decode captured runtime output without losing undecodable bytes."""
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="surrogateescape")
    return output
