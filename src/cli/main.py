"""Gemlocks CLI entry points.
This module exposes list, extract, index, cleanup, and status commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from core.config import GemlocksConfig
from core.errors import BatchExtractionError
from core.types import is_valid_version_number
from store.archive_sdk import GemlocksClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="gemlocks",
        description="Archive Gemfile and Gemfile.lock from versioned container images",
    )
    parser.add_argument("--archive-root", help="Override GEMLOCKS_ARCHIVE_ROOT for this command")
    parser.add_argument("--index-path", help="Override GEMLOCKS_INDEX_PATH for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_list_command(subparsers)
    _add_extract_command(subparsers)
    _add_index_command(subparsers)
    _add_cleanup_command(subparsers)
    _add_status_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Gemlocks CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "extract":
        _validate_extract_args(parser, args)
    client = _build_client(args.archive_root, args.index_path)
    if args.command == "list":
        return _run_list_command(client)
    if args.command == "extract":
        return _run_extract_command(client, args)
    if args.command == "index":
        return _run_index_command(client)
    if args.command == "cleanup":
        return _run_cleanup_command(client)
    if args.command == "status":
        return _run_status_command(client)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _validate_extract_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    """Reject extract options that cannot apply to the selected mode."""
    if args.version is None:
        return
    if args.cleanup:
        parser.error("--cleanup only applies to --all extraction")
    if not is_valid_version_number(args.version):
        parser.error(f"invalid version {args.version!r}: expected digits like 1.2.3")


def _build_client(archive_root: str | None, index_path: str | None) -> GemlocksClient:
    """Build SDK client with optional path overrides.

    Args:
        archive_root: Optional archive root override.
        index_path: Optional index file override.

    Returns:
        Configured SDK client.
    """
    config = GemlocksConfig.from_env()
    if archive_root:
        config = config.with_archive_root(Path(archive_root).expanduser().resolve())
    if index_path:
        config = replace(config, index_path=Path(index_path).expanduser().resolve())
    return GemlocksClient(config)


def _run_list_command(client: GemlocksClient) -> int:
    """Handle list command."""
    versions = client.list_remote_versions()
    print("Available versions:")
    for version in versions:
        print(f"  {version}")
    return 0


def _run_extract_command(client: GemlocksClient, args: argparse.Namespace) -> int:
    """Handle extract command.

    Single-version failures propagate; batch failures print a summary.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    if args.version:
        outcome = client.extract_version(args.version)
        if outcome.status == "skipped":
            print(f"Skipping v{outcome.version}/ (already exists)")
        else:
            print(f"Extracted to v{outcome.version}/ (from {outcome.source_dir})")
        return 0
    try:
        report = client.extract_all(cleanup_after=args.cleanup)
    except BatchExtractionError as error:
        print(error)
        return 1
    print(f"extracted={report.extracted_count}")
    print(f"skipped={report.skipped_count}")
    return 0


def _run_index_command(client: GemlocksClient) -> int:
    """Handle index command."""
    summary = client.generate_index()
    print(f"Generated {summary.index_path.name} with {summary.local_count} versions")
    print(f"remote_count={summary.remote_count}")
    print(f"missing_count={len(summary.missing_versions)}")
    return 0


def _run_cleanup_command(client: GemlocksClient) -> int:
    """Handle cleanup command."""
    report = client.cleanup_images()
    for image in report.removed:
        print(f"removed={image}")
    print(f"kept={report.kept or '-'}")
    return 0


def _run_status_command(client: GemlocksClient) -> int:
    """Handle status command."""
    summary = client.read_status()
    print(f"index_path={summary.index_path}")
    print(f"generated_at={summary.generated_at or '-'}")
    print(f"local_count={summary.local_count}")
    print(f"remote_count={summary.remote_count}")
    print(f"latest_version={summary.latest_version or '-'}")
    print(f"missing_versions={','.join(summary.missing_versions) or '-'}")
    return 0


def _add_list_command(subparsers: Any) -> None:
    """Register list subcommand."""
    subparsers.add_parser("list", help="List versions published in the registry")


def _add_extract_command(subparsers: Any) -> None:
    """Register extract subcommand."""
    parser = subparsers.add_parser("extract", help="Extract Gemfile and Gemfile.lock")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("-v", "--version", help="Extract one specific version")
    target.add_argument("-a", "--all", action="store_true", help="Extract all available versions")
    parser.add_argument(
        "--cleanup",
        action="store_true",
        help="Remove stale local images after extracting all versions (--all only)",
    )


def _add_index_command(subparsers: Any) -> None:
    """Register index subcommand."""
    subparsers.add_parser("index", help="Regenerate the local index file")


def _add_cleanup_command(subparsers: Any) -> None:
    """Register cleanup subcommand."""
    subparsers.add_parser("cleanup", help="Remove stale local images, keeping the newest")


def _add_status_command(subparsers: Any) -> None:
    """Register status subcommand."""
    subparsers.add_parser("status", help="Show the stored index summary")
