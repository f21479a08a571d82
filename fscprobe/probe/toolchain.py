"""Build toolchain discovery.

The .NET SDK has to be located once per process before any project is
evaluated. ToolchainLocator does this explicitly: ensure_ready() is
idempotent and returns the cached Toolchain after the first call.
"""

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from fscprobe.core.config.settings import ToolchainSettings
from fscprobe.core.exceptions.errors import ToolchainError
from fscprobe.core.logger.logger import get_logger

logger = get_logger(__name__)

DOTNET_EXECUTABLE = "dotnet.exe" if sys.platform == "win32" else "dotnet"

# Keeps the SDK quiet and the console output machine readable
TOOLCHAIN_ENVIRONMENT = {
    "DOTNET_CLI_TELEMETRY_OPTOUT": "1",
    "DOTNET_NOLOGO": "1",
    "DOTNET_SKIP_FIRST_TIME_EXPERIENCE": "1",
    "MSBUILDTERMINALLOGGER": "off",
}

VERSION_QUERY_TIMEOUT = 60


@dataclass(frozen=True)
class Toolchain:
    """A located .NET SDK.

    Attributes:
        dotnet_path: Absolute path of the dotnet host.
        sdk_version: Output of 'dotnet --version'.
        msbuild_version: Output of 'dotnet msbuild -version', if queried.
    """

    dotnet_path: Path
    sdk_version: str
    msbuild_version: str | None = None

    def environment(self) -> dict[str, str]:
        """Environment for child processes running the toolchain."""
        env = os.environ.copy()
        env.update(TOOLCHAIN_ENVIRONMENT)
        env.setdefault("DOTNET_ROOT", str(self.dotnet_path.parent))
        return env


class ToolchainLocator:
    """Locates and registers the dotnet toolchain.

    Search order:
    1. ToolchainSettings.dotnet_path
    2. DOTNET_HOST_PATH environment variable
    3. DOTNET_ROOT environment variable
    4. PATH
    """

    def __init__(self, settings: ToolchainSettings | None = None):
        """Initialize the locator.

        Args:
            settings: Toolchain settings. Defaults are used if not provided.
        """
        self.settings = settings or ToolchainSettings()
        self._toolchain: Toolchain | None = None

    @property
    def is_registered(self) -> bool:
        """Whether a toolchain has already been registered."""
        return self._toolchain is not None

    @property
    def toolchain(self) -> Toolchain:
        """The registered toolchain.

        Raises:
            ToolchainError: If no toolchain has been registered yet.
        """
        if self._toolchain is None:
            raise ToolchainError("Toolchain has not been registered")
        return self._toolchain

    def ensure_ready(self) -> Toolchain:
        """Register the toolchain unless that already happened.

        Returns:
            The registered toolchain.
        """
        if self._toolchain is None:
            self._toolchain = self.register_defaults()
        return self._toolchain

    def register_defaults(self) -> Toolchain:
        """Locate dotnet and verify that it runs.

        Returns:
            The located toolchain.

        Raises:
            ToolchainError: If no usable dotnet host is found.
        """
        candidates = self.candidate_paths()
        if not candidates:
            raise ToolchainError(
                "Could not find the dotnet executable. "
                "Install the .NET SDK or set FSCPROBE_TOOLCHAIN_DOTNET_PATH."
            )

        errors: list[str] = []
        for candidate in candidates:
            try:
                sdk_version = self._query_version(candidate, ["--version"])
                msbuild_version = None
                if self.settings.require_msbuild:
                    msbuild_version = self._query_version(
                        candidate, ["msbuild", "-version", "-nologo"]
                    )
            except ToolchainError as e:
                logger.debug(f"Rejected toolchain candidate {candidate}: {e.message}")
                errors.append(e.message)
                continue

            logger.info(f"Using dotnet {sdk_version} at {candidate}")
            return Toolchain(
                dotnet_path=candidate,
                sdk_version=sdk_version,
                msbuild_version=msbuild_version,
            )

        raise ToolchainError(
            errors[-1],
            executable=str(candidates[-1]),
            details={"candidates": [str(c) for c in candidates]},
        )

    def candidate_paths(self) -> list[Path]:
        """List existing dotnet executables in search order, without duplicates."""
        raw: list[Path] = []

        if self.settings.dotnet_path:
            raw.append(self.settings.dotnet_path)

        host_path = os.environ.get("DOTNET_HOST_PATH")
        if host_path:
            raw.append(Path(host_path))

        dotnet_root = os.environ.get("DOTNET_ROOT")
        if dotnet_root:
            raw.append(Path(dotnet_root) / DOTNET_EXECUTABLE)

        on_path = shutil.which("dotnet")
        if on_path:
            raw.append(Path(on_path))

        found: list[Path] = []
        for path in raw:
            if not path.is_file():
                continue
            resolved = path.resolve()
            if resolved not in found:
                found.append(resolved)
        return found

    def _query_version(self, executable: Path, args: list[str]) -> str:
        """Run the executable and return the last line it prints."""
        command = [str(executable), *args]
        env = os.environ.copy()
        env.update(TOOLCHAIN_ENVIRONMENT)
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=VERSION_QUERY_TIMEOUT,
                env=env,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ToolchainError(
                f"Failed to run '{' '.join(command)}': {e}",
                executable=str(executable),
            ) from e

        if completed.returncode != 0:
            reason = (completed.stderr or completed.stdout).strip().splitlines()
            raise ToolchainError(
                f"'{' '.join(command)}' exited with code {completed.returncode}"
                + (f": {reason[-1]}" if reason else ""),
                executable=str(executable),
            )

        lines = completed.stdout.strip().splitlines()
        return lines[-1].strip() if lines else ""


def ensure_toolchain_ready(settings: ToolchainSettings | None = None) -> Toolchain:
    """Convenience function to locate the toolchain once.

    Args:
        settings: Toolchain settings.

    Returns:
        The registered toolchain.
    """
    return ToolchainLocator(settings).ensure_ready()
