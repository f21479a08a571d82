"""Report formatting and exit codes."""

from enum import IntEnum
from typing import Iterable, TextIO

import click

from fscprobe.probe.models import COMMAND_LINE_ARGS_ITEM, ExtractedArguments

PROGRAM_NAME = "fscprobe"


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    USAGE = 1
    NOT_FOUND = 2
    BUILD_FAILED = 3
    EVALUATION_FAILED = 4
    TOOLCHAIN_UNAVAILABLE = 5


def usage_message(program: str = PROGRAM_NAME) -> str:
    return f"Usage: {program} <path-to-project-file>"


def not_found_message(project_path: str) -> str:
    return f"Project file '{project_path}' not found."


def build_failed_message(project_path: str) -> str:
    return f"Build failed for '{project_path}'."


def evaluation_failed_message(project_path: str, reason: str) -> str:
    first_line = reason.strip().splitlines()[0] if reason.strip() else "Unknown error"
    return f"Failed to evaluate project '{project_path}': {first_line}"


def toolchain_unavailable_message(reason: str) -> str:
    first_line = reason.strip().splitlines()[0] if reason.strip() else "Unknown error"
    return f"Build toolchain not available: {first_line}"


def format_entry(entry: ExtractedArguments) -> list[str]:
    """Format the block of one project."""
    lines = [f"Project: {entry.project_path}"]
    if not entry.has_arguments:
        lines.append(f"  {COMMAND_LINE_ARGS_ITEM}: <none>")
    else:
        lines.extend(f"  arg: {argument}" for argument in entry.arguments)
    return lines


def format_report(entries: Iterable[ExtractedArguments]) -> list[str]:
    """Format all blocks in the order received."""
    lines: list[str] = []
    for entry in entries:
        lines.extend(format_entry(entry))
    return lines


class Reporter:
    """Writes the argument report line by line."""

    def __init__(self, stream: TextIO | None = None):
        """Initialize the reporter.

        Args:
            stream: Output stream; stdout if not provided.
        """
        self.stream = stream

    def write(self, entries: Iterable[ExtractedArguments]) -> int:
        """Write the report.

        Returns:
            Number of project blocks written.
        """
        count = 0
        for entry in entries:
            for line in format_entry(entry):
                click.echo(line, file=self.stream)
            count += 1
        return count
