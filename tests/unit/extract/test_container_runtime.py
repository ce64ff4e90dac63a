"""Unit tests for the Docker CLI runtime adapter."""

from __future__ import annotations

import subprocess
from types import SimpleNamespace

import pytest

from extract.container_runtime import DockerRuntime, parse_image_list


class _RecordingRun:
    def __init__(
        self,
        returncode: int = 0,
        stdout: str | bytes = "",
        stderr: str | bytes = "",
    ) -> None:
        self.calls: list[tuple[list[str], dict[str, object]]] = []
        self._result = SimpleNamespace(returncode=returncode, stdout=stdout, stderr=stderr)

    def __call__(self, command: list[str], **kwargs: object) -> SimpleNamespace:
        self.calls.append((command, kwargs))
        return self._result


def test_run_with_script_overrides_entrypoint(monkeypatch) -> None:
    """Probe runs should use sh as entrypoint and pass the script to -c."""
    fake_run = _RecordingRun(returncode=0, stdout=b"out", stderr=b"err")
    monkeypatch.setattr(subprocess, "run", fake_run)

    result = DockerRuntime("podman").run_with_script("repo:1.0.0", "echo hi", timeout_seconds=5.0)

    command, kwargs = fake_run.calls[0]
    assert command[:3] == ["podman", "run", "--rm"]
    assert command[3] == "--name" and command[4].startswith("gemlocks-run-")
    assert command[5:] == ["--entrypoint", "sh", "repo:1.0.0", "-c", "echo hi"]
    assert kwargs["timeout"] == 5.0 and "text" not in kwargs
    assert (result.exit_code, result.stdout, result.stderr) == (0, "out", "err")


def test_run_with_script_keeps_undecodable_bytes(monkeypatch) -> None:
    """Non-UTF-8 bytes and CRLF endings should survive decoding."""
    monkeypatch.setattr(subprocess, "run", _RecordingRun(stdout=b"# caf\xe9\r\nGEM\r\n"))

    result = DockerRuntime().run_with_script("repo:1.0.0", "cat Gemfile")

    assert result.stdout.encode("utf-8", errors="surrogateescape") == b"# caf\xe9\r\nGEM\r\n"


def test_run_with_script_removes_container_after_timeout(monkeypatch) -> None:
    """A timed-out run should force-remove its named container and re-raise."""
    calls: list[list[str]] = []

    def _run(command, **kwargs):
        calls.append(command)
        if command[1] == "run":
            raise subprocess.TimeoutExpired(cmd=command, timeout=kwargs["timeout"])
        return SimpleNamespace(returncode=0, stdout=b"", stderr=b"")

    monkeypatch.setattr(subprocess, "run", _run)

    with pytest.raises(subprocess.TimeoutExpired):
        DockerRuntime().run_with_script("repo:1.0.0", "sleep 60", timeout_seconds=0.1)

    container_name = calls[0][calls[0].index("--name") + 1]
    assert calls[1] == ["docker", "rm", "-f", container_name]


def test_pull_returns_exit_status(monkeypatch) -> None:
    """Pull should report the runtime exit status."""
    fake_run = _RecordingRun(returncode=1)
    monkeypatch.setattr(subprocess, "run", fake_run)

    exit_code = DockerRuntime().pull_image("repo:1.0.0")

    assert exit_code == 1 and fake_run.calls[0][0] == ["docker", "pull", "repo:1.0.0"]


def test_pull_without_binary_returns_127(monkeypatch) -> None:
    """A missing runtime binary should read as a failed pull."""

    def _missing(command, **kwargs):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr(subprocess, "run", _missing)

    assert DockerRuntime("nope").pull_image("repo:1.0.0") == 127


def test_remove_images_force_removes_batch(monkeypatch) -> None:
    """Removal should force-remove every reference in one call."""
    fake_run = _RecordingRun(returncode=0)
    monkeypatch.setattr(subprocess, "run", fake_run)

    removed = DockerRuntime().remove_images(["repo:1.0.0", "repo:1.1.0"])

    assert removed and fake_run.calls[0][0] == ["docker", "rmi", "-f", "repo:1.0.0", "repo:1.1.0"]


def test_remove_images_suppresses_missing_binary(monkeypatch) -> None:
    """Removal errors should never propagate."""

    def _missing(command, **kwargs):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr(subprocess, "run", _missing)

    assert DockerRuntime().remove_images(["repo:1.0.0"]) is False


def test_list_images_parses_repository_tags(monkeypatch) -> None:
    """Image listing should return tags of the requested repository only."""
    stdout = "metanorma/metanorma:1.1.0\nmetanorma/metanorma:<none>\nother/repo:1.0.0\n"
    monkeypatch.setattr(subprocess, "run", _RecordingRun(returncode=0, stdout=stdout))

    tags = DockerRuntime().list_images("metanorma/metanorma")

    assert tags == ["1.1.0"]


def test_list_images_failure_returns_empty(monkeypatch) -> None:
    """A failing listing should degrade to no images."""
    monkeypatch.setattr(subprocess, "run", _RecordingRun(returncode=1, stderr="daemon down"))

    assert DockerRuntime().list_images("metanorma/metanorma") == []


def test_parse_image_list_handles_registry_ports() -> None:
    """Repository names containing a port should split on the last colon."""
    output = "localhost:5000/metanorma:2.0.0\n"

    assert parse_image_list(output, "localhost:5000/metanorma") == ["2.0.0"]
