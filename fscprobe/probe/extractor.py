"""Diagnostic extraction of compiler arguments from a built graph."""

from fscprobe.probe.models import (
    COMMAND_LINE_ARGS_ITEM,
    TARGET_LANGUAGE,
    ExtractedArguments,
    NodeBuildStatus,
    ProjectGraph,
    ProjectNode,
)


class DiagnosticExtractor:
    """Reads the compiler argument items of nodes matching a language tag.

    Nodes are visited in graph order. A matching node that was never built
    is reported like a node without arguments. The graph is not modified.
    """

    def __init__(
        self,
        language_tag: str = TARGET_LANGUAGE,
        item_name: str = COMMAND_LINE_ARGS_ITEM,
    ):
        self.language_tag = language_tag
        self.item_name = item_name

    def matches(self, node: ProjectNode) -> bool:
        """Whether the node's language tag equals the target, ignoring case."""
        return node.language.casefold() == self.language_tag.casefold()

    def extract(self, graph: ProjectGraph) -> list[ExtractedArguments]:
        return [self.extract_node(node) for node in graph if self.matches(node)]

    def extract_node(self, node: ProjectNode) -> ExtractedArguments:
        return ExtractedArguments(
            identity=node.identity,
            arguments=tuple(item.evaluated_include for item in node.get_items(self.item_name)),
            built=node.status == NodeBuildStatus.SUCCEEDED,
        )


def extract_arguments(
    graph: ProjectGraph,
    language_tag: str = TARGET_LANGUAGE,
) -> list[ExtractedArguments]:
    """Convenience function returning the arguments of every matching node."""
    return DiagnosticExtractor(language_tag).extract(graph)
