"""Probe script and output protocol.

The probe runs inside each image and prints the manifest and lock file
in a fixed wire format:

    GEMFILE_DIR=<dir>
    <manifest content>
    ===GEMFILE.EOF===
    <lock content>

When no manifest exists it prints ``ERROR: No Gemfile found`` and exits 1.
Bump ``PROBE_PROTOCOL_VERSION`` whenever the script or format changes.
"""

from __future__ import annotations

from core.errors import ContainerRunError, ProbeParseError
from core.types import ProbeResult, ProcessResult

PROBE_PROTOCOL_VERSION = 1
MANIFEST_CANDIDATE_PATHS = (
    "/metanorma/Gemfile",
    "/setup/Gemfile",
    "/Gemfile",
    "/root/Gemfile",
)
SOURCE_DIR_MARKER = "GEMFILE_DIR="
SECTION_SENTINEL = "===GEMFILE.EOF==="
NOT_FOUND_MESSAGE = "ERROR: No Gemfile found"
_CANDIDATE_LIST = " ".join(MANIFEST_CANDIDATE_PATHS)

PROBE_SCRIPT = f"""#!/bin/sh
for path in {_CANDIDATE_LIST}; do
  if [ -f "$path" ]; then
    gemfile_dir=$(dirname "$path")
    echo "{SOURCE_DIR_MARKER}$gemfile_dir"
    cat "$path"
    echo "{SECTION_SENTINEL}"
    cat "$gemfile_dir/Gemfile.lock"
    exit 0
  fi
done
echo "{NOT_FOUND_MESSAGE}"
exit 1
"""


def check_probe_run(version: str, result: ProcessResult) -> None:
    """Reject probe runs that failed or found no manifest.

    Args:
        version: Version being extracted.
        result: Captured probe run.

    Raises:
        ContainerRunError: On non-zero exit or the not-found message.
    """
    if result.exit_code != 0 or NOT_FOUND_MESSAGE in result.stdout:
        raise ContainerRunError(
            f"Failed to extract Gemfile from version {version} "
            f"(exit status {result.exit_code}):\n{_combined_output(result)}",
            version=version,
            output=_combined_output(result),
        )


def parse_probe_output(version: str, output: str) -> ProbeResult:
    """Tokenize probe output into the source directory and both files.

    Args:
        version: Version being extracted, for error context.
        output: Captured probe stdout.

    Returns:
        Parsed probe result with trimmed file contents.

    Raises:
        ProbeParseError: If the sentinel, marker line, or manifest is missing.
    """
    head, sentinel, lock_section = output.partition(SECTION_SENTINEL)
    if not sentinel:
        raise ProbeParseError(
            f"Failed to parse Gemfile output for version {version}: "
            f"section sentinel {SECTION_SENTINEL!r} not found.",
            version=version,
            output=output,
        )
    marker_line, _, manifest_section = head.partition("\n")
    if not marker_line.startswith(SOURCE_DIR_MARKER):
        raise ProbeParseError(
            f"Failed to parse Gemfile output for version {version}: "
            f"output does not start with a {SOURCE_DIR_MARKER} line.",
            version=version,
            output=output,
        )
    manifest_text = manifest_section.strip()
    if not manifest_text:
        raise ProbeParseError(
            f"Failed to parse Gemfile output for version {version}: manifest section is empty.",
            version=version,
            output=output,
        )
    return ProbeResult(
        source_dir=marker_line[len(SOURCE_DIR_MARKER):].strip(),
        manifest_text=manifest_text,
        lock_text=lock_section.strip(),
    )


def _combined_output(result: ProcessResult) -> str:
    if result.stderr.strip():
        return f"{result.stdout}{result.stderr}"
    return result.stdout
