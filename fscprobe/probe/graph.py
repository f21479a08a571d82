"""
Graph Builder

Resolves a root project and its transitive project references into a
ProjectGraph. Nodes are deduplicated by (path, global properties), so a
project shared by several parents is evaluated once.
"""

import os
from collections import deque
from typing import Mapping

from fscprobe.core.exceptions.errors import InvalidInputError, ProjectEvaluationError
from fscprobe.core.logger.logger import get_logger
from fscprobe.probe.engine import BuildEngine
from fscprobe.probe.models import (
    PROJECT_REFERENCE_ITEM,
    RUNTIME_IDENTIFIER_PROPERTY,
    TARGET_FRAMEWORK_PROPERTY,
    TARGET_FRAMEWORKS_PROPERTY,
    ProjectGraph,
    ProjectIdentity,
    ProjectItem,
    ProjectNode,
)

logger = get_logger(__name__)

# Global properties a referencing project does not pass on to its references
NON_INHERITED_PROPERTIES = (TARGET_FRAMEWORK_PROPERTY, RUNTIME_IDENTIFIER_PROPERTY)

# ProjectReference metadata holding "Name=Value" pairs to set on the reference
SET_PROPERTY_METADATA = ("SetConfiguration", "SetPlatform", "SetTargetFramework")
ADDITIONAL_PROPERTY_METADATA = ("Properties", "AdditionalProperties")
REMOVE_PROPERTY_METADATA = ("GlobalPropertiesToRemove", "UndefineProperties")


def normalize_project_path(path: str, base_dir: str | None = None) -> str:
    """Make a project path absolute and normalized.

    Backslash separators written on Windows are accepted on other platforms.
    """
    if os.sep != "\\":
        path = path.replace("\\", os.sep)
    if base_dir is not None and not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    return os.path.normpath(os.path.abspath(path))


def parse_property_list(value: str) -> dict[str, str]:
    """Parse "A=1;B=2" into a mapping; entries without '=' are ignored."""
    result: dict[str, str] = {}
    for entry in value.split(";"):
        name, sep, prop_value = entry.partition("=")
        if sep and name.strip():
            result[name.strip()] = prop_value.strip()
    return result


def _without(properties: Mapping[str, str], names: list[str] | tuple[str, ...]) -> dict[str, str]:
    folded = {name.casefold() for name in names}
    return {k: v for k, v in properties.items() if k.casefold() not in folded}


def reference_global_properties(
    parent: Mapping[str, str],
    reference: ProjectItem,
) -> dict[str, str]:
    """Compute the global properties a project reference is evaluated with.

    Args:
        parent: Global properties of the referencing node.
        reference: The ProjectReference item.

    Returns:
        Global properties of the referenced node.
    """
    props = _without(parent, NON_INHERITED_PROPERTIES)

    for name in REMOVE_PROPERTY_METADATA:
        to_remove = [p.strip() for p in reference.get_metadata(name).split(";") if p.strip()]
        props = _without(props, to_remove)

    for name in SET_PROPERTY_METADATA + ADDITIONAL_PROPERTY_METADATA:
        additions = parse_property_list(reference.get_metadata(name))
        props = _without(props, list(additions))
        props.update(additions)

    return props


class GraphBuilder:
    """
    Builds the project graph for a root project.

    Discovery is breadth first from the root. A project with
    TargetFrameworks set and no TargetFramework becomes an outer node that
    depends on one inner node per framework; references are followed from
    inner and single-targeted nodes.
    """

    def __init__(
        self,
        engine: BuildEngine,
        global_properties: Mapping[str, str] | None = None,
    ):
        """
        Initialize the graph builder.

        Args:
            engine: Engine used to evaluate projects.
            global_properties: Global properties applied to the root project.
        """
        self.engine = engine
        self.global_properties = dict(global_properties or {})
        self._nodes: dict[ProjectIdentity, ProjectNode] = {}
        self._order: list[ProjectNode] = []

    async def build(self, root_path: str) -> ProjectGraph:
        """
        Resolve the graph of a root project.

        Args:
            root_path: Path of the root project file.

        Returns:
            The project graph, with the root as its entry point.

        Raises:
            InvalidInputError: If the root project file does not exist.
            ProjectEvaluationError: If any project cannot be evaluated, a
                reference points to a missing file, or references form a cycle.
        """
        path = normalize_project_path(root_path)
        if not os.path.isfile(path):
            raise InvalidInputError(f"Project file '{path}' not found.", project_path=path)

        self._nodes = {}
        self._order = []

        root, _ = await self._get_or_create(path, self.global_properties)
        pending = deque(self._order)
        processed: set[ProjectNode] = set()

        while pending:
            node = pending.popleft()
            if node in processed:
                continue
            processed.add(node)

            for dependency in await self._resolve_dependencies(node):
                node.add_dependency(dependency)
                if dependency not in processed:
                    pending.append(dependency)

        self._check_acyclic()
        logger.info(f"Project graph for {path} has {len(self._order)} node(s)")
        return ProjectGraph(entry_points=[root], nodes=list(self._order))

    async def _get_or_create(
        self,
        path: str,
        global_properties: Mapping[str, str],
        referenced_by: ProjectNode | None = None,
    ) -> tuple[ProjectNode, bool]:
        identity = ProjectIdentity.create(path, global_properties)
        existing = self._nodes.get(identity)
        if existing is not None:
            return existing, False

        try:
            evaluated = await self.engine.evaluate(path, identity.properties)
        except ProjectEvaluationError as e:
            if referenced_by is not None and e.referenced_by is None:
                e.referenced_by = referenced_by.path
                e.details["referenced_by"] = referenced_by.path
            raise

        node = ProjectNode(
            identity=identity,
            properties=dict(evaluated.properties),
            items={name: list(items) for name, items in evaluated.items.items()},
        )
        node.is_outer_build = bool(
            node.get_property(TARGET_FRAMEWORKS_PROPERTY).strip()
            and not node.get_property(TARGET_FRAMEWORK_PROPERTY).strip()
        )
        self._nodes[identity] = node
        self._order.append(node)
        logger.debug(f"Discovered {identity}")
        return node, True

    async def _resolve_dependencies(self, node: ProjectNode) -> list[ProjectNode]:
        if node.is_outer_build:
            return await self._inner_builds(node)

        dependencies: list[ProjectNode] = []
        base_dir = os.path.dirname(node.path)
        for reference in node.get_items(PROJECT_REFERENCE_ITEM):
            full_path = reference.get_metadata("FullPath") or reference.evaluated_include
            ref_path = normalize_project_path(full_path, base_dir)
            if not os.path.isfile(ref_path):
                raise ProjectEvaluationError(
                    f"Referenced project '{ref_path}' does not exist",
                    project_path=ref_path,
                    referenced_by=node.path,
                )
            props = reference_global_properties(node.identity.properties, reference)
            dependency, _ = await self._get_or_create(ref_path, props, referenced_by=node)
            dependencies.append(dependency)
        return dependencies

    async def _inner_builds(self, outer: ProjectNode) -> list[ProjectNode]:
        frameworks = [
            tfm.strip()
            for tfm in outer.get_property(TARGET_FRAMEWORKS_PROPERTY).split(";")
            if tfm.strip()
        ]
        inner_nodes: list[ProjectNode] = []
        for tfm in dict.fromkeys(frameworks):
            props = {**outer.identity.properties, TARGET_FRAMEWORK_PROPERTY: tfm}
            inner, _ = await self._get_or_create(outer.path, props, referenced_by=outer)
            inner_nodes.append(inner)
        return inner_nodes

    def _check_acyclic(self) -> None:
        """Raise if project references form a cycle."""
        on_stack: set[ProjectNode] = set()
        done: set[ProjectNode] = set()

        for start in self._order:
            if start in done:
                continue
            path = [start]
            on_stack.add(start)
            stack = [iter(start.dependencies)]
            while stack:
                for dependency in stack[-1]:
                    if dependency in on_stack:
                        cycle = path[path.index(dependency):] + [dependency]
                        raise ProjectEvaluationError(
                            "Circular project reference: "
                            + " -> ".join(os.path.basename(n.path) for n in cycle),
                            project_path=dependency.path,
                            details={"cycle": [str(n.identity) for n in cycle]},
                        )
                    if dependency not in done:
                        path.append(dependency)
                        on_stack.add(dependency)
                        stack.append(iter(dependency.dependencies))
                        break
                else:
                    stack.pop()
                    node = path.pop()
                    on_stack.discard(node)
                    done.add(node)


async def build_graph(
    root_path: str,
    engine: BuildEngine,
    global_properties: Mapping[str, str] | None = None,
) -> ProjectGraph:
    """Convenience function to build the graph of a root project.

    Args:
        root_path: Path of the root project file.
        engine: Engine used to evaluate projects.
        global_properties: Global properties applied to the root project.

    Returns:
        The project graph.
    """
    builder = GraphBuilder(engine, global_properties=global_properties)
    return await builder.build(root_path)
