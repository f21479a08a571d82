"""Project graph construction, graph builds and compiler argument extraction.

This module provides:
- Toolchain discovery for the .NET SDK
- Project graph construction with transitive reference resolution
- Dependency-ordered graph builds
- Extraction and reporting of the computed F# compiler arguments
"""

from fscprobe.probe.engine import BuildEngine, DotnetBuildEngine, create_engine
from fscprobe.probe.extractor import DiagnosticExtractor, extract_arguments
from fscprobe.probe.graph import GraphBuilder, build_graph
from fscprobe.probe.models import (
    COMMAND_LINE_ARGS_ITEM,
    LANGUAGE_PROPERTY,
    TARGET_LANGUAGE,
    BuildOutcome,
    EvaluatedProject,
    ExtractedArguments,
    NodeBuildResult,
    NodeBuildStatus,
    ProjectGraph,
    ProjectIdentity,
    ProjectItem,
    ProjectNode,
)
from fscprobe.probe.orchestrator import BuildOrchestrator, run_build
from fscprobe.probe.pipeline import CompilerArgsProbe, ProbeReport
from fscprobe.probe.reporter import ExitCode, Reporter, format_report
from fscprobe.probe.toolchain import Toolchain, ToolchainLocator, ensure_toolchain_ready

__all__ = [
    "BuildEngine",
    "DotnetBuildEngine",
    "create_engine",
    "GraphBuilder",
    "build_graph",
    "BuildOrchestrator",
    "run_build",
    "DiagnosticExtractor",
    "extract_arguments",
    "Reporter",
    "ExitCode",
    "format_report",
    "CompilerArgsProbe",
    "ProbeReport",
    "Toolchain",
    "ToolchainLocator",
    "ensure_toolchain_ready",
    "ProjectIdentity",
    "ProjectItem",
    "ProjectNode",
    "ProjectGraph",
    "EvaluatedProject",
    "NodeBuildStatus",
    "NodeBuildResult",
    "BuildOutcome",
    "ExtractedArguments",
    "LANGUAGE_PROPERTY",
    "COMMAND_LINE_ARGS_ITEM",
    "TARGET_LANGUAGE",
]
