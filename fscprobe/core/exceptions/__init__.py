"""Exception definitions module."""

from fscprobe.core.exceptions.errors import (
    BuildFailedError,
    ConfigurationError,
    FscProbeError,
    InvalidInputError,
    ProjectEvaluationError,
    ToolchainError,
)

__all__ = [
    "FscProbeError",
    "InvalidInputError",
    "ProjectEvaluationError",
    "BuildFailedError",
    "ToolchainError",
    "ConfigurationError",
]
