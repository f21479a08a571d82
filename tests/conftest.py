"""Pytest configuration and shared fixtures."""

import asyncio
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Generator, Mapping

import pytest

from fscprobe.core.exceptions.errors import ProjectEvaluationError
from fscprobe.probe.engine import BuildEngine
from fscprobe.probe.models import (
    COMMAND_LINE_ARGS_ITEM,
    LANGUAGE_PROPERTY,
    PROJECT_REFERENCE_ITEM,
    TARGET_FRAMEWORK_PROPERTY,
    TARGET_FRAMEWORKS_PROPERTY,
    EvaluatedProject,
    NodeBuildResult,
    ProjectItem,
    ProjectNode,
)


@dataclass
class FakeProject:
    """Synthetic project known to the fake engine."""

    path: str
    language: str = "F#"
    references: list[str] = field(default_factory=list)
    arguments: list[str] = field(default_factory=list)
    target_frameworks: str = ""
    fail_build: bool = False
    fail_evaluation: bool = False
    build_delay: float = 0.0
    reference_metadata: dict[str, dict[str, str]] = field(default_factory=dict)


class FakeBuildEngine(BuildEngine):
    """Build engine returning synthetic evaluations and build results.

    Every evaluation and every build start/finish is recorded so tests can
    check deduplication and ordering.
    """

    name = "fake"

    def __init__(self) -> None:
        self.projects: dict[str, FakeProject] = {}
        self.evaluations: list[tuple[str, dict[str, str]]] = []
        self.events: list[tuple[str, str]] = []
        self.running = 0
        self.max_running = 0

    def add(self, project: FakeProject) -> FakeProject:
        self.projects[project.path] = project
        return project

    async def evaluate(
        self,
        project_path: str,
        global_properties: Mapping[str, str],
    ) -> EvaluatedProject:
        self.evaluations.append((project_path, dict(global_properties)))
        project = self.projects[project_path]
        if project.fail_evaluation:
            raise ProjectEvaluationError(
                f"{project_path}(1,1): error MSB4025: The project file could not be loaded.",
                project_path=project_path,
            )

        properties = {LANGUAGE_PROPERTY: project.language}
        tfm = global_properties.get(TARGET_FRAMEWORK_PROPERTY, "")
        if project.target_frameworks:
            properties[TARGET_FRAMEWORKS_PROPERTY] = project.target_frameworks
        else:
            tfm = tfm or "net8.0"
        properties[TARGET_FRAMEWORK_PROPERTY] = tfm

        base_dir = os.path.dirname(project_path)
        references = [
            ProjectItem(
                evaluated_include=os.path.relpath(ref, base_dir),
                metadata={"FullPath": ref, **project.reference_metadata.get(ref, {})},
            )
            for ref in project.references
        ]
        return EvaluatedProject(
            path=project_path,
            global_properties=dict(global_properties),
            properties=properties,
            items={PROJECT_REFERENCE_ITEM: references},
        )

    async def build(self, node: ProjectNode, action: str) -> NodeBuildResult:
        key = str(node.identity)
        project = self.projects[node.path]
        self.events.append(("start", key))
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(project.build_delay)
        finally:
            self.running -= 1
        self.events.append(("end", key))

        if project.fail_build:
            return NodeBuildResult(
                identity=node.identity,
                success=False,
                output="error FS0039: The value or constructor 'x' is not defined.",
                error_message="error FS0039: The value or constructor 'x' is not defined.",
            )
        return NodeBuildResult(
            identity=node.identity,
            success=True,
            items={
                COMMAND_LINE_ARGS_ITEM: [
                    ProjectItem(evaluated_include=arg) for arg in project.arguments
                ]
            },
        )

    def index(self, event: str, key: str) -> int:
        return self.events.index((event, key))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory that is cleaned up after the test.

    Yields:
        Path to the temporary directory.
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def fake_engine() -> FakeBuildEngine:
    """Create an empty fake build engine."""
    return FakeBuildEngine()


@pytest.fixture
def make_project(
    temp_dir: Path,
    fake_engine: FakeBuildEngine,
) -> Callable[..., FakeProject]:
    """Factory writing a project file to disk and registering it with the engine.

    References are given as FakeProject instances or absolute paths.
    """

    def factory(name: str, references=(), extension: str = ".fsproj", **kwargs) -> FakeProject:
        project_dir = temp_dir / name
        project_dir.mkdir(exist_ok=True)
        project_file = project_dir / f"{name}{extension}"
        project_file.write_text("<Project Sdk=\"Microsoft.NET.Sdk\" />\n", encoding="utf-8")
        ref_paths = [r.path if isinstance(r, FakeProject) else str(r) for r in references]
        return fake_engine.add(
            FakeProject(path=str(project_file.resolve()), references=ref_paths, **kwargs)
        )

    return factory
