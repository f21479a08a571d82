"""
Compiler Arguments Probe

Runs graph construction, the graph build and argument extraction for one
root project.
"""

from dataclasses import dataclass, field
from typing import Mapping

from fscprobe.core.config.settings import BuildSettings
from fscprobe.core.exceptions.errors import BuildFailedError
from fscprobe.core.logger.logger import get_logger
from fscprobe.probe.engine import BuildEngine
from fscprobe.probe.extractor import DiagnosticExtractor
from fscprobe.probe.graph import GraphBuilder
from fscprobe.probe.models import (
    TARGET_LANGUAGE,
    BuildOutcome,
    ExtractedArguments,
    ProjectGraph,
)
from fscprobe.probe.orchestrator import BuildOrchestrator

logger = get_logger(__name__)


@dataclass
class ProbeReport:
    """Everything a successful probe produced."""

    graph: ProjectGraph
    outcome: BuildOutcome
    results: list[ExtractedArguments] = field(default_factory=list)


class CompilerArgsProbe:
    """
    Reports the compiler arguments computed for a project graph.

    A build failure anywhere in the graph raises BuildFailedError and no
    arguments are extracted.
    """

    def __init__(
        self,
        engine: BuildEngine,
        language_tag: str = TARGET_LANGUAGE,
        action: str = BuildOrchestrator.DEFAULT_ACTION,
        max_parallel: int = BuildOrchestrator.DEFAULT_MAX_PARALLEL,
        global_properties: Mapping[str, str] | None = None,
    ):
        """
        Initialize the probe.

        Args:
            engine: Build engine for evaluation and execution.
            language_tag: Language of the nodes to report.
            action: Target executed on every node.
            max_parallel: Maximum number of concurrent node builds.
            global_properties: Global properties applied to the root project.
        """
        self.engine = engine
        self.action = action
        self.global_properties = dict(global_properties or {})
        self.orchestrator = BuildOrchestrator(engine, max_parallel=max_parallel)
        self.extractor = DiagnosticExtractor(language_tag)

    @classmethod
    def from_settings(
        cls,
        engine: BuildEngine,
        settings: BuildSettings,
        global_properties: Mapping[str, str] | None = None,
    ) -> "CompilerArgsProbe":
        """Create a probe from build settings; explicit properties take precedence."""
        return cls(
            engine,
            action=settings.action,
            max_parallel=settings.max_parallel,
            global_properties={**settings.global_properties, **(global_properties or {})},
        )

    async def run(self, project_path: str) -> ProbeReport:
        """
        Probe a root project.

        Args:
            project_path: Path of the root project file.

        Returns:
            The graph, the build outcome and the extracted arguments.

        Raises:
            InvalidInputError: If the project file does not exist.
            ProjectEvaluationError: If the graph cannot be constructed.
            BuildFailedError: If the graph build failed.
        """
        builder = GraphBuilder(self.engine, global_properties=self.global_properties)
        graph = await builder.build(project_path)

        outcome = await self.orchestrator.run_build(graph, self.action)
        if not outcome.success:
            raise BuildFailedError(
                f"Build failed for '{graph.entry_point.path}'.",
                outcome=outcome,
            )

        results = self.extractor.extract(graph)
        logger.info(
            f"{len(results)} of {len(graph)} node(s) match language "
            f"'{self.extractor.language_tag}'"
        )
        return ProbeReport(graph=graph, outcome=outcome, results=results)
