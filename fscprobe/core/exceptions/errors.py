"""Custom exception definitions for fscprobe."""

from typing import Any


class FscProbeError(Exception):
    """Base exception for all fscprobe errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Error message.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class InvalidInputError(FscProbeError):
    """Exception raised for a bad command line argument or a missing project file."""

    def __init__(
        self,
        message: str,
        project_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid input error.

        Args:
            message: Error message.
            project_path: Project path the caller supplied.
            details: Additional error details.
        """
        details = details or {}
        if project_path:
            details["project_path"] = project_path
        super().__init__(message, details)
        self.project_path = project_path


class ProjectEvaluationError(FscProbeError):
    """Exception raised when a project in the graph cannot be evaluated."""

    def __init__(
        self,
        message: str,
        project_path: str | None = None,
        referenced_by: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize project evaluation error.

        Args:
            message: Error message.
            project_path: Project file that failed to evaluate.
            referenced_by: Project that referenced the failing project.
            details: Additional error details.
        """
        details = details or {}
        if project_path:
            details["project_path"] = project_path
        if referenced_by:
            details["referenced_by"] = referenced_by
        super().__init__(message, details)
        self.project_path = project_path
        self.referenced_by = referenced_by


class BuildFailedError(FscProbeError):
    """Exception raised when the graph build reports an aggregate failure."""

    def __init__(
        self,
        message: str,
        outcome: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize build failure error.

        Args:
            message: Error message.
            outcome: The BuildOutcome of the failed graph build.
            details: Additional error details.
        """
        details = details or {}
        if outcome is not None:
            details["failed_nodes"] = [str(i) for i in outcome.failed_nodes]
        super().__init__(message, details)
        self.outcome = outcome


class ToolchainError(FscProbeError):
    """Exception raised when the build toolchain cannot be located or run."""

    def __init__(
        self,
        message: str,
        executable: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize toolchain error.

        Args:
            message: Error message.
            executable: Executable that was tried.
            details: Additional error details.
        """
        details = details or {}
        if executable:
            details["executable"] = executable
        super().__init__(message, details)


class ConfigurationError(FscProbeError):
    """Exception raised for configuration errors."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error.

        Args:
            message: Error message.
            config_key: Configuration key that caused the error.
            details: Additional error details.
        """
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details)
