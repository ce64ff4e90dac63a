"""Unit tests for CLI command handling."""

from __future__ import annotations

import pytest

from cli.main import build_parser, main
from core.errors import BatchExtractionError, ContainerRunError
from core.types import BatchExtractionReport, ProcessResult, VersionIdentity
from store.archive_sdk import GemlocksClient
from tests.fakes import FakeRuntime, build_config, single_page_session, success_output


def _install_client(monkeypatch, tmp_path, runtime: FakeRuntime, remote: list[str]) -> None:
    client = GemlocksClient(
        build_config(tmp_path),
        runtime=runtime,
        session=single_page_session(remote),
    )
    monkeypatch.setattr("cli.main._build_client", lambda archive_root, index_path: client)


def test_cli_list_prints_versions(monkeypatch, tmp_path, capsys) -> None:
    """list should print the header and one indented version per line."""
    _install_client(monkeypatch, tmp_path, FakeRuntime(), ["1.10.0", "1.9.0", "latest"])

    exit_code = main(["list"])
    lines = capsys.readouterr().out.splitlines()

    assert exit_code == 0
    assert lines[-3:] == ["Available versions:", "  1.9.0", "  1.10.0"]


def test_cli_extract_single_version(monkeypatch, tmp_path, capsys) -> None:
    """extract --version should archive the version and report its source."""
    runtime = FakeRuntime(
        probe_results={
            "metanorma/metanorma:1.0.0": ProcessResult(
                0, success_output("/setup", "gem 'a'", "GEM")
            ),
        }
    )
    _install_client(monkeypatch, tmp_path, runtime, [])

    exit_code = main(["extract", "--version", "1.0.0"])
    output = capsys.readouterr().out

    assert exit_code == 0 and "Extracted to v1.0.0/ (from /setup)" in output
    assert VersionIdentity("1.0.0").exists_locally(tmp_path)


def test_cli_extract_single_version_propagates_errors(monkeypatch, tmp_path) -> None:
    """Single-version failures should propagate to the caller."""
    _install_client(monkeypatch, tmp_path, FakeRuntime(), [])

    with pytest.raises(ContainerRunError):
        main(["extract", "-v", "1.0.0"])


def test_cli_extract_all_failure_exits_one(monkeypatch, tmp_path, capsys) -> None:
    """Batch failures should print a summary and exit non-zero."""
    runtime = FakeRuntime(
        probe_results={
            "metanorma/metanorma:1.0.0": ProcessResult(0, success_output("/", "gem 'a'", "GEM")),
        }
    )
    _install_client(monkeypatch, tmp_path, runtime, ["1.0.0", "1.1.0"])

    exit_code = main(["extract", "--all"])
    output = capsys.readouterr().out

    assert exit_code == 1 and "Failed to extract 1 version(s): 1.1.0" in output


def test_cli_extract_all_with_cleanup(monkeypatch, tmp_path, capsys) -> None:
    """--cleanup should prune images after a successful batch."""
    runtime = FakeRuntime(local_tags=["1.0.0", "1.1.0"])
    _install_client(monkeypatch, tmp_path, runtime, [])

    exit_code = main(["extract", "--all", "--cleanup"])
    output = capsys.readouterr().out

    assert exit_code == 0 and "extracted=0" in output
    assert runtime.removed_batches == [["metanorma/metanorma:1.0.0"]]


def test_cli_extract_requires_a_target() -> None:
    """extract needs exactly one of --version or --all."""
    parser = build_parser()

    with pytest.raises(SystemExit):
        parser.parse_args(["extract"])
    with pytest.raises(SystemExit):
        parser.parse_args(["extract", "--version", "1.0.0", "--all"])


def test_cli_extract_rejects_cleanup_with_single_version(monkeypatch, tmp_path, capsys) -> None:
    """--cleanup only applies to --all and should be rejected with --version."""
    runtime = FakeRuntime()
    _install_client(monkeypatch, tmp_path, runtime, [])

    with pytest.raises(SystemExit) as exit_info:
        main(["extract", "-v", "1.0.0", "--cleanup"])

    assert exit_info.value.code == 2
    assert "--cleanup only applies to --all" in capsys.readouterr().err
    assert runtime.pulled == []


def test_cli_extract_rejects_malformed_version(monkeypatch, tmp_path, capsys) -> None:
    """A non-numeric version should fail before any directory is created."""
    runtime = FakeRuntime()
    _install_client(monkeypatch, tmp_path, runtime, [])

    with pytest.raises(SystemExit) as exit_info:
        main(["extract", "--version", "latest"])

    assert exit_info.value.code == 2
    assert "invalid version 'latest'" in capsys.readouterr().err
    assert runtime.pulled == [] and not (tmp_path / "vlatest").exists()


def test_cli_index_then_status(monkeypatch, tmp_path, capsys) -> None:
    """index should write the file that status then reports."""
    identity = VersionIdentity("1.0.0")
    identity.directory_path(tmp_path).mkdir()
    identity.manifest_path(tmp_path).write_text("gem 'a'\n", encoding="utf-8")
    identity.lock_path(tmp_path).write_text("GEM\n", encoding="utf-8")
    _install_client(monkeypatch, tmp_path, FakeRuntime(), ["1.0.0", "1.1.0"])

    index_exit = main(["index"])
    status_exit = main(["status"])
    output = capsys.readouterr().out

    assert (index_exit, status_exit) == (0, 0)
    assert "Generated index.yaml with 1 versions" in output
    assert "missing_versions=1.1.0" in output and "latest_version=1.0.0" in output


def test_cli_status_uses_archive_root_override(tmp_path, capsys) -> None:
    """status should read the index under --archive-root without network access."""
    exit_code = main(["--archive-root", str(tmp_path), "status"])
    output = capsys.readouterr().out

    assert exit_code == 0
    assert f"index_path={tmp_path.resolve() / 'index.yaml'}" in output
    assert "local_count=0" in output


def test_cli_cleanup_prints_kept_image(monkeypatch, tmp_path, capsys) -> None:
    """cleanup should report removed and kept images."""
    _install_client(monkeypatch, tmp_path, FakeRuntime(local_tags=["1.0.0", "2.0.0"]), [])

    exit_code = main(["cleanup"])
    output = capsys.readouterr().out

    assert exit_code == 0
    assert "removed=metanorma/metanorma:1.0.0" in output
    assert "kept=metanorma/metanorma:2.0.0" in output


def test_batch_error_message_names_versions() -> None:
    """Aggregate error should name the failed count and versions."""
    report = BatchExtractionReport(outcomes=(), failed_versions=("1.0.0", "1.2.0"))

    assert str(BatchExtractionError(report)) == "Failed to extract 2 version(s): 1.0.0, 1.2.0"
