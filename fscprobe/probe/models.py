"""
Probe Data Models

Project graph, build outcome and extraction records shared by the graph
builder, the build orchestrator, the diagnostic extractor and the reporter.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping

# Recognized property and item names. Values are looked up by these keys
# through ProjectNode.get_property / ProjectNode.get_items.
LANGUAGE_PROPERTY = "Language"
TARGET_FRAMEWORK_PROPERTY = "TargetFramework"
TARGET_FRAMEWORKS_PROPERTY = "TargetFrameworks"
RUNTIME_IDENTIFIER_PROPERTY = "RuntimeIdentifier"
PROJECT_REFERENCE_ITEM = "ProjectReference"
COMMAND_LINE_ARGS_ITEM = "FscCommandLineArgs"

# Language tag reported by the probe
TARGET_LANGUAGE = "F#"


def _lookup(mapping: Mapping[str, Any], key: str) -> Any:
    """Look up an MSBuild name, which is case-insensitive."""
    if key in mapping:
        return mapping[key]
    folded = key.casefold()
    for name, value in mapping.items():
        if name.casefold() == folded:
            return value
    return None


class NodeBuildStatus(str, Enum):
    """Post-build status of a project node."""

    NOT_BUILT = "not_built"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ProjectIdentity:
    """Identity of a graph node: project file plus global properties.

    Attributes:
        path: Absolute path of the project file.
        global_properties: Sorted (name, value) pairs distinguishing
            configurations of the same project file.
    """

    path: str
    global_properties: tuple[tuple[str, str], ...] = ()

    @classmethod
    def create(
        cls,
        path: str,
        global_properties: Mapping[str, str] | None = None,
    ) -> "ProjectIdentity":
        """Build an identity with normalized global properties."""
        props = global_properties or {}
        return cls(
            path=path,
            global_properties=tuple(sorted(props.items(), key=lambda kv: kv[0].casefold())),
        )

    @property
    def properties(self) -> dict[str, str]:
        """Global properties as a mapping."""
        return dict(self.global_properties)

    def __str__(self) -> str:
        if not self.global_properties:
            return self.path
        config = ";".join(f"{k}={v}" for k, v in self.global_properties)
        return f"{self.path} ({config})"


@dataclass(frozen=True)
class ProjectItem:
    """One evaluated item of a project.

    Attributes:
        evaluated_include: The item's evaluated Include value.
        metadata: Evaluated metadata of the item.
    """

    evaluated_include: str
    metadata: Mapping[str, str] = field(default_factory=dict)

    def get_metadata(self, name: str, default: str = "") -> str:
        """Get a metadata value by name (case-insensitive)."""
        value = _lookup(self.metadata, name)
        return default if value is None else value


@dataclass
class EvaluatedProject:
    """Result of evaluating one project file under a set of global properties."""

    path: str
    global_properties: dict[str, str] = field(default_factory=dict)
    properties: dict[str, str] = field(default_factory=dict)
    items: dict[str, list[ProjectItem]] = field(default_factory=dict)


@dataclass(eq=False)
class ProjectNode:
    """A node of the project graph.

    Nodes are created by the graph builder and mutated in place by the build
    orchestrator. Equality and hashing are by object identity.
    """

    identity: ProjectIdentity
    properties: dict[str, str] = field(default_factory=dict)
    items: dict[str, list[ProjectItem]] = field(default_factory=dict)
    status: NodeBuildStatus = NodeBuildStatus.NOT_BUILT
    is_outer_build: bool = False
    dependencies: list["ProjectNode"] = field(default_factory=list)
    referencing_nodes: list["ProjectNode"] = field(default_factory=list)

    @property
    def path(self) -> str:
        """Absolute path of the project file."""
        return self.identity.path

    @property
    def language(self) -> str:
        """Language tag from the evaluated Language property."""
        return self.get_property(LANGUAGE_PROPERTY)

    def get_property(self, name: str, default: str = "") -> str:
        """Get an evaluated property value; missing properties are empty."""
        value = _lookup(self.properties, name)
        return default if value is None else value

    def get_items(self, name: str) -> list[ProjectItem]:
        """Get the evaluated items of the given type, in evaluation order."""
        return list(_lookup(self.items, name) or [])

    def add_dependency(self, node: "ProjectNode") -> None:
        """Add an edge from this node to a node it references."""
        if node not in self.dependencies:
            self.dependencies.append(node)
            node.referencing_nodes.append(self)

    def __repr__(self) -> str:
        return f"ProjectNode({self.identity}, status={self.status.value})"


class ProjectGraph:
    """Directed acyclic graph of project nodes.

    Nodes are kept in discovery order, so the first entry point comes first.
    """

    def __init__(
        self,
        entry_points: list[ProjectNode],
        nodes: list[ProjectNode],
    ):
        self.entry_points = entry_points
        self._nodes = nodes
        self._by_identity = {node.identity: node for node in nodes}

    @property
    def project_nodes(self) -> list[ProjectNode]:
        """All nodes in discovery order."""
        return list(self._nodes)

    @property
    def entry_point(self) -> ProjectNode:
        """The root node the graph was built from."""
        return self.entry_points[0]

    def get(self, identity: ProjectIdentity) -> ProjectNode | None:
        """Find a node by identity."""
        return self._by_identity.get(identity)

    def topological_order(self) -> list[ProjectNode]:
        """Return nodes so that every node follows all of its dependencies."""
        ordered: list[ProjectNode] = []
        visited: set[ProjectNode] = set()

        for start in self._nodes:
            if start in visited:
                continue
            visited.add(start)
            # Iterative: reference chains can be deeper than the recursion limit
            stack = [(start, iter(start.dependencies))]
            while stack:
                node, pending = stack[-1]
                for dependency in pending:
                    if dependency not in visited:
                        visited.add(dependency)
                        stack.append((dependency, iter(dependency.dependencies)))
                        break
                else:
                    stack.pop()
                    ordered.append(node)
        return ordered

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ProjectNode]:
        return iter(self._nodes)


@dataclass
class NodeBuildResult:
    """Result of executing the build action on one node.

    Attributes:
        identity: Node the result belongs to.
        success: Whether the action succeeded.
        properties: Properties read back after the action ran.
        items: Items read back after the action ran.
        output: Captured build output.
        error_message: Error message if the action failed.
        duration_seconds: Time taken by the action.
        skipped: Whether the node was not attempted.
        skip_reason: Why the node was not attempted.
    """

    identity: ProjectIdentity
    success: bool
    properties: dict[str, str] = field(default_factory=dict)
    items: dict[str, list[ProjectItem]] = field(default_factory=dict)
    output: str = ""
    error_message: str | None = None
    duration_seconds: float = 0.0
    skipped: bool = False
    skip_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "project": str(self.identity),
            "success": self.success,
            "duration_seconds": self.duration_seconds,
            "error_message": self.error_message,
            "skipped": self.skipped,
            "skip_reason": self.skip_reason,
        }


@dataclass
class BuildOutcome:
    """Aggregate result of building a whole graph."""

    root_path: str
    action: str
    success: bool
    node_results: dict[ProjectIdentity, NodeBuildResult] = field(default_factory=dict)
    failed_nodes: list[ProjectIdentity] = field(default_factory=list)
    skipped_nodes: list[ProjectIdentity] = field(default_factory=list)
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "root_path": self.root_path,
            "action": self.action,
            "success": self.success,
            "failed_nodes": [str(i) for i in self.failed_nodes],
            "skipped_nodes": [str(i) for i in self.skipped_nodes],
            "duration_seconds": self.duration_seconds,
        }


@dataclass(frozen=True)
class ExtractedArguments:
    """Compiler arguments recorded for one matching node.

    Attributes:
        identity: Node the arguments belong to.
        arguments: Argument tokens in evaluation order.
        built: Whether the node's build action ran successfully.
    """

    identity: ProjectIdentity
    arguments: tuple[str, ...] = ()
    built: bool = True

    @property
    def project_path(self) -> str:
        """Absolute path of the project file."""
        return self.identity.path

    @property
    def has_arguments(self) -> bool:
        """Whether any argument was recorded."""
        return bool(self.arguments)
