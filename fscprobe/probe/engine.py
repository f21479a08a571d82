"""
Build Engine - interface to the MSBuild evaluation and execution engine.

The probe only needs two operations from the build system: evaluating a
project under a set of global properties, and running a named target on a
graph node. BuildEngine is that interface; DotnetBuildEngine implements it
on top of the 'dotnet msbuild' command line.
"""

import asyncio
import re
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Mapping

from fscprobe.core.config.settings import BuildSettings
from fscprobe.core.exceptions.errors import ProjectEvaluationError
from fscprobe.core.logger.logger import get_logger
from fscprobe.core.utils.json_parser import JSONParseError, parse_json_document
from fscprobe.probe.models import (
    COMMAND_LINE_ARGS_ITEM,
    LANGUAGE_PROPERTY,
    PROJECT_REFERENCE_ITEM,
    RUNTIME_IDENTIFIER_PROPERTY,
    TARGET_FRAMEWORK_PROPERTY,
    TARGET_FRAMEWORKS_PROPERTY,
    EvaluatedProject,
    NodeBuildResult,
    ProjectItem,
    ProjectNode,
)
from fscprobe.probe.toolchain import Toolchain

logger = get_logger(__name__)

# Properties read back when evaluating a project for the graph
EVALUATION_PROPERTIES = [
    LANGUAGE_PROPERTY,
    TARGET_FRAMEWORK_PROPERTY,
    TARGET_FRAMEWORKS_PROPERTY,
    RUNTIME_IDENTIFIER_PROPERTY,
]

# Items read back when evaluating a project for the graph
EVALUATION_ITEMS = [PROJECT_REFERENCE_ITEM]

# Properties and items read back after the build action ran
BUILD_PROPERTIES = [LANGUAGE_PROPERTY, TARGET_FRAMEWORK_PROPERTY]
BUILD_ITEMS = [COMMAND_LINE_ARGS_ITEM]

# Matches "file(1,2): error MSB1234: message" style diagnostics
_ERROR_LINE = re.compile(r":\s*error\s+[A-Z]*\d*\s*:", re.IGNORECASE)


class BuildEngine(ABC):
    """
    Abstract build engine.

    Implementations evaluate projects for the graph builder and execute the
    build action for the orchestrator.
    """

    name: str = "base"

    @abstractmethod
    async def evaluate(
        self,
        project_path: str,
        global_properties: Mapping[str, str],
    ) -> EvaluatedProject:
        """
        Evaluate a project file.

        Args:
            project_path: Absolute path of the project file.
            global_properties: Global properties to evaluate under.

        Returns:
            Evaluated properties and items of the project.

        Raises:
            ProjectEvaluationError: If the project cannot be evaluated.
        """

    @abstractmethod
    async def build(self, node: ProjectNode, action: str) -> NodeBuildResult:
        """
        Execute the build action on one graph node.

        Dependencies of the node have already been built when this is called.

        Args:
            node: Node to build.
            action: Target to execute (e.g. "Build").

        Returns:
            Result of the action, including items produced by it.
        """


def format_property(name: str, value: str) -> str:
    """Format a global property switch, escaping MSBuild separators."""
    escaped = value.replace("%", "%25").replace(";", "%3B")
    return f"-property:{name}={escaped}"


def summarize_errors(output: str, limit: int = 5) -> str:
    """Pick the error lines out of MSBuild output.

    Falls back to the last non-empty lines when no error line is present.
    """
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    errors = [line for line in lines if _ERROR_LINE.search(line)]
    selected = errors[:limit] if errors else lines[-limit:]
    return "\n".join(selected) if selected else "Unknown error"


def parse_items(raw_items: Mapping[str, Any]) -> dict[str, list[ProjectItem]]:
    """Convert the 'Items' section of MSBuild JSON output."""
    items: dict[str, list[ProjectItem]] = {}
    for item_type, entries in raw_items.items():
        parsed: list[ProjectItem] = []
        for entry in entries or []:
            if isinstance(entry, str):
                parsed.append(ProjectItem(evaluated_include=entry))
                continue
            metadata = {
                str(k): "" if v is None else str(v)
                for k, v in entry.items()
                if k != "Identity"
            }
            parsed.append(
                ProjectItem(
                    evaluated_include=str(entry.get("Identity", "")),
                    metadata=metadata,
                )
            )
        items[item_type] = parsed
    return items


def parse_properties(raw_properties: Mapping[str, Any]) -> dict[str, str]:
    """Convert the 'Properties' section of MSBuild JSON output."""
    return {
        str(k): "" if v is None else str(v)
        for k, v in raw_properties.items()
    }


class DotnetBuildEngine(BuildEngine):
    """
    Build engine driving 'dotnet msbuild'.

    Evaluation uses -getProperty/-getItem without targets, which makes MSBuild
    print the evaluated values as JSON. Builds run one project at a time with
    BuildProjectReferences=false, since the orchestrator already built the
    references, and read the produced items back the same way.
    """

    name = "dotnet"

    def __init__(
        self,
        toolchain: Toolchain,
        timeout: int | None = None,
        restore: bool = False,
        extra_properties: Mapping[str, str] | None = None,
    ):
        """
        Initialize the engine.

        Args:
            toolchain: Located dotnet toolchain.
            timeout: Maximum duration of one MSBuild invocation in seconds.
            restore: Whether builds run the Restore target first.
            extra_properties: Properties passed to every invocation but not
                part of node identity.
        """
        self.toolchain = toolchain
        self.timeout = timeout
        self.restore = restore
        self.extra_properties = dict(extra_properties or {})

    async def evaluate(
        self,
        project_path: str,
        global_properties: Mapping[str, str],
    ) -> EvaluatedProject:
        cmd = self._base_command(project_path)
        cmd.extend(f"-getProperty:{name}" for name in EVALUATION_PROPERTIES)
        cmd.extend(f"-getItem:{name}" for name in EVALUATION_ITEMS)
        cmd.extend(self._property_switches(global_properties))

        logger.debug(f"Evaluating {project_path}")
        try:
            returncode, stdout, stderr = await self.run_command(
                cmd, cwd=Path(project_path).parent
            )
        except (OSError, TimeoutError) as e:
            raise ProjectEvaluationError(
                f"Could not run MSBuild for {project_path}: {e}",
                project_path=project_path,
            ) from e

        if returncode != 0:
            raise ProjectEvaluationError(
                summarize_errors(stdout + "\n" + stderr),
                project_path=project_path,
                details={"return_code": returncode},
            )

        try:
            document = parse_json_document(stdout)
        except JSONParseError as e:
            raise ProjectEvaluationError(
                f"Unexpected MSBuild output for {project_path}: {e}",
                project_path=project_path,
            ) from e

        return EvaluatedProject(
            path=project_path,
            global_properties=dict(global_properties),
            properties=parse_properties(document.get("Properties", {})),
            items=parse_items(document.get("Items", {})),
        )

    async def build(self, node: ProjectNode, action: str) -> NodeBuildResult:
        if node.is_outer_build:
            # The inner builds (dependencies of this node) did the work
            return NodeBuildResult(identity=node.identity, success=True)

        cmd = self._base_command(node.path)
        cmd.extend(["-verbosity:quiet", f"-target:{action}"])
        if self.restore:
            cmd.append("-restore")
        cmd.append(format_property("BuildProjectReferences", "false"))
        cmd.extend(f"-getProperty:{name}" for name in BUILD_PROPERTIES)
        cmd.extend(f"-getItem:{name}" for name in BUILD_ITEMS)
        cmd.extend(self._property_switches(node.identity.properties))

        start_time = time.time()
        returncode, stdout, stderr = await self.run_command(
            cmd, cwd=Path(node.path).parent
        )
        duration = time.time() - start_time
        output = stdout + ("\n" + stderr if stderr else "")

        if returncode != 0:
            return NodeBuildResult(
                identity=node.identity,
                success=False,
                output=output,
                error_message=summarize_errors(output),
                duration_seconds=duration,
            )

        try:
            document = parse_json_document(stdout)
        except JSONParseError as e:
            return NodeBuildResult(
                identity=node.identity,
                success=False,
                output=output,
                error_message=f"Unexpected MSBuild output: {e}",
                duration_seconds=duration,
            )

        return NodeBuildResult(
            identity=node.identity,
            success=True,
            properties=parse_properties(document.get("Properties", {})),
            items=parse_items(document.get("Items", {})),
            output=output,
            duration_seconds=duration,
        )

    def _base_command(self, project_path: str) -> list[str]:
        return [
            str(self.toolchain.dotnet_path),
            "msbuild",
            project_path,
            "-nologo",
            # No MSBuild worker nodes may outlive the run
            "-nodeReuse:false",
        ]

    def _property_switches(self, global_properties: Mapping[str, str]) -> list[str]:
        merged = {**self.extra_properties, **global_properties}
        return [format_property(name, value) for name, value in merged.items()]

    async def run_command(
        self,
        cmd: list[str],
        cwd: Path | None = None,
    ) -> tuple[int, str, str]:
        """
        Run a command asynchronously in the toolchain environment.

        Args:
            cmd: Command and arguments.
            cwd: Working directory.

        Returns:
            Tuple of (return_code, stdout, stderr).

        Raises:
            TimeoutError: If the command exceeds the configured timeout.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=self.toolchain.environment(),
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise TimeoutError(
                f"Command timed out after {self.timeout} seconds"
            )

        return (
            process.returncode or 0,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )


def create_engine(toolchain: Toolchain, settings: BuildSettings | None = None) -> BuildEngine:
    """Create the build engine for a located toolchain.

    Args:
        toolchain: Located dotnet toolchain.
        settings: Build settings.

    Returns:
        Configured build engine.
    """
    settings = settings or BuildSettings()
    extra: dict[str, str] = {}
    if settings.provide_command_line_args:
        extra["ProvideCommandLineArgs"] = "true"
    return DotnetBuildEngine(
        toolchain=toolchain,
        timeout=settings.timeout,
        restore=settings.restore,
        extra_properties=extra,
    )

