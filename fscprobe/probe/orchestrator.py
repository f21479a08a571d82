"""
Build Orchestrator

Executes a build action over every node of a ProjectGraph in dependency
order and reduces the per-node results to one BuildOutcome.
"""

import asyncio
import os
import time
from typing import Callable

from fscprobe.core.logger.logger import get_logger
from fscprobe.probe.engine import BuildEngine
from fscprobe.probe.models import (
    BuildOutcome,
    NodeBuildResult,
    NodeBuildStatus,
    ProjectGraph,
    ProjectNode,
)


class BuildOrchestrator:
    """
    Builds a project graph.

    The orchestrator:
    1. Starts one task per node; a task waits for its dependencies first
    2. Limits concurrently running builds with a semaphore
    3. Skips nodes whose dependencies failed or were skipped (they stay
       not built)
    4. Applies each result to its node and aggregates the outcome

    Build output is captured by the engine and only logged at DEBUG level.
    """

    DEFAULT_ACTION = "Build"
    DEFAULT_MAX_PARALLEL = os.cpu_count() or 1

    def __init__(
        self,
        engine: BuildEngine,
        max_parallel: int = DEFAULT_MAX_PARALLEL,
        on_node_complete: Callable[[ProjectNode, NodeBuildResult], None] | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            engine: Engine executing the build action.
            max_parallel: Maximum number of nodes built at the same time.
            on_node_complete: Callback invoked after each node finished or
                was skipped.
        """
        if max_parallel < 1:
            raise ValueError("max_parallel must be at least 1")
        self.logger = get_logger(__name__)
        self.engine = engine
        self.max_parallel = max_parallel
        self.on_node_complete = on_node_complete

    async def run_build(
        self,
        graph: ProjectGraph,
        action: str = DEFAULT_ACTION,
    ) -> BuildOutcome:
        """
        Execute the action for every node of the graph.

        Args:
            graph: Graph to build. Node status, properties and items are
                updated in place.
            action: Target to execute.

        Returns:
            Aggregate outcome; it fails if any node failed.
        """
        start_time = time.time()
        semaphore = asyncio.Semaphore(self.max_parallel)
        tasks: dict[ProjectNode, asyncio.Task[NodeBuildResult]] = {}

        # Topological order guarantees dependency tasks exist before dependents
        for node in graph.topological_order():
            dependency_tasks = [tasks[dep] for dep in node.dependencies]
            tasks[node] = asyncio.create_task(
                self._build_node(node, action, dependency_tasks, semaphore)
            )

        results = await asyncio.gather(*tasks.values())

        failed = [r.identity for r in results if not r.success and not r.skipped]
        skipped = [r.identity for r in results if r.skipped]
        outcome = BuildOutcome(
            root_path=graph.entry_point.path,
            action=action,
            success=not failed and not skipped,
            node_results={r.identity: r for r in results},
            failed_nodes=failed,
            skipped_nodes=skipped,
            duration_seconds=time.time() - start_time,
        )

        if outcome.success:
            self.logger.info(
                f"{action} succeeded for {len(results)} node(s) "
                f"in {outcome.duration_seconds:.1f}s"
            )
        else:
            self.logger.info(
                f"{action} failed: {len(failed)} failed, {len(skipped)} skipped "
                f"out of {len(results)} node(s)"
            )
        return outcome

    async def _build_node(
        self,
        node: ProjectNode,
        action: str,
        dependency_tasks: list["asyncio.Task[NodeBuildResult]"],
        semaphore: asyncio.Semaphore,
    ) -> NodeBuildResult:
        dependency_results = await asyncio.gather(*dependency_tasks)

        blocked = [r for r in dependency_results if not r.success]
        if blocked:
            result = NodeBuildResult(
                identity=node.identity,
                success=False,
                skipped=True,
                skip_reason=f"Dependency {blocked[0].identity} was not built",
            )
            node.status = NodeBuildStatus.NOT_BUILT
            self.logger.info(f"Skipping {node.identity}: {result.skip_reason}")
            self._notify(node, result)
            return result

        async with semaphore:
            self.logger.debug(f"Running {action} on {node.identity}")
            start_time = time.time()
            try:
                result = await self.engine.build(node, action)
            except Exception as e:
                result = NodeBuildResult(
                    identity=node.identity,
                    success=False,
                    error_message=f"{type(e).__name__}: {e}",
                )
            result.duration_seconds = result.duration_seconds or time.time() - start_time

        self._apply(node, result)
        self._notify(node, result)
        return result

    def _apply(self, node: ProjectNode, result: NodeBuildResult) -> None:
        """Copy the post-build state of a result onto its node."""
        node.properties.update(result.properties)
        node.items.update(result.items)
        node.status = NodeBuildStatus.SUCCEEDED if result.success else NodeBuildStatus.FAILED

        if result.output:
            self.logger.debug(f"Output of {node.identity}:\n{result.output}")
        if result.success:
            self.logger.debug(
                f"Built {node.identity} in {result.duration_seconds:.1f}s"
            )
        else:
            self.logger.info(
                f"Build of {node.identity} failed: {result.error_message or 'Unknown error'}"
            )

    def _notify(self, node: ProjectNode, result: NodeBuildResult) -> None:
        if self.on_node_complete is not None:
            self.on_node_complete(node, result)


async def run_build(
    graph: ProjectGraph,
    engine: BuildEngine,
    action: str = BuildOrchestrator.DEFAULT_ACTION,
    max_parallel: int = BuildOrchestrator.DEFAULT_MAX_PARALLEL,
) -> BuildOutcome:
    """Convenience function to build a graph.

    Args:
        graph: Graph to build.
        engine: Engine executing the build action.
        action: Target to execute.
        max_parallel: Maximum number of concurrent node builds.

    Returns:
        Aggregate build outcome.
    """
    orchestrator = BuildOrchestrator(engine, max_parallel=max_parallel)
    return await orchestrator.run_build(graph, action)
