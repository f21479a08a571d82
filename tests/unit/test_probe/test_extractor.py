"""Unit tests for the diagnostic extractor."""

import pytest

from fscprobe.probe.extractor import DiagnosticExtractor, extract_arguments
from fscprobe.probe.models import (
    COMMAND_LINE_ARGS_ITEM,
    NodeBuildStatus,
    ProjectGraph,
    ProjectIdentity,
    ProjectItem,
    ProjectNode,
)


def make_node(path: str, language: str, arguments=None, status=NodeBuildStatus.SUCCEEDED) -> ProjectNode:
    items = {}
    if arguments is not None:
        items[COMMAND_LINE_ARGS_ITEM] = [ProjectItem(a) for a in arguments]
    return ProjectNode(
        identity=ProjectIdentity.create(path),
        properties={"Language": language},
        items=items,
        status=status,
    )


def make_graph(*nodes: ProjectNode) -> ProjectGraph:
    return ProjectGraph(entry_points=[nodes[0]], nodes=list(nodes))


class TestLanguageFilter:
    """Tests for language tag matching."""

    def test_case_insensitive_match(self):
        """'f#' and 'F#' both match the target tag 'F#'."""
        graph = make_graph(
            make_node("/a/A.fsproj", "F#", ["--a"]),
            make_node("/b/B.fsproj", "f#", ["--b"]),
        )

        results = extract_arguments(graph, "F#")

        assert [r.project_path for r in results] == ["/a/A.fsproj", "/b/B.fsproj"]

    def test_non_matching_nodes_omitted(self):
        """C# and untagged nodes are left out."""
        graph = make_graph(
            make_node("/a/A.fsproj", "F#", []),
            make_node("/b/B.csproj", "C#", ["/out:B.dll"]),
            make_node("/c/C.proj", "", ["x"]),
        )

        results = extract_arguments(graph)

        assert [r.project_path for r in results] == ["/a/A.fsproj"]

    def test_language_property_lookup_ignores_case(self):
        """The Language property name itself is case-insensitive."""
        node = ProjectNode(
            identity=ProjectIdentity.create("/a/A.fsproj"),
            properties={"language": "F#"},
        )

        assert DiagnosticExtractor("F#").matches(node)


class TestArguments:
    """Tests for argument extraction."""

    def test_order_preserved(self):
        """Arguments keep their order and duplicates."""
        graph = make_graph(make_node("/a/A.fsproj", "F#", ["--c", "--a", "--b", "--a"]))

        results = extract_arguments(graph)

        assert results[0].arguments == ("--c", "--a", "--b", "--a")

    def test_no_items_means_no_arguments(self):
        """A matched node without items has an empty argument list."""
        graph = make_graph(make_node("/a/A.fsproj", "F#"))

        results = extract_arguments(graph)

        assert results[0].arguments == ()
        assert results[0].has_arguments is False
        assert results[0].built is True

    def test_not_built_node_reported_without_arguments(self):
        """A node that never ran is reported as having no arguments."""
        graph = make_graph(make_node("/a/A.fsproj", "F#", status=NodeBuildStatus.NOT_BUILT))

        results = extract_arguments(graph)

        assert len(results) == 1
        assert results[0].has_arguments is False
        assert results[0].built is False

    def test_graph_not_mutated(self):
        """Extraction leaves nodes untouched."""
        node = make_node("/a/A.fsproj", "F#", ["-o", "out.dll"])
        graph = make_graph(node)
        before = (dict(node.properties), {k: list(v) for k, v in node.items.items()}, node.status)

        extract_arguments(graph)

        assert (node.properties, node.items, node.status) == before

    def test_custom_item_name(self):
        """The item name can be changed."""
        node = make_node("/a/A.fsproj", "F#")
        node.items["CscCommandLineArgs"] = [ProjectItem("/nologo")]

        results = DiagnosticExtractor("F#", item_name="CscCommandLineArgs").extract(make_graph(node))

        assert results[0].arguments == ("/nologo",)


class TestExtractAfterBuild:
    """Extraction over a graph built with the fake engine."""

    @pytest.mark.asyncio
    async def test_after_graph_build(self, make_project, fake_engine):
        """Arguments recorded by the build are extracted for F# nodes only."""
        from fscprobe.probe.graph import build_graph
        from fscprobe.probe.orchestrator import run_build

        lib = make_project("Lib", language="C#", extension=".csproj", arguments=["/nologo"])
        app = make_project("App", references=[lib], arguments=["-o", "out.dll"])
        graph = await build_graph(app.path, fake_engine)
        await run_build(graph, fake_engine)

        results = extract_arguments(graph)

        assert len(results) == 1
        assert results[0].project_path == app.path
        assert results[0].arguments == ("-o", "out.dll")
