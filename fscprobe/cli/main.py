"""Main CLI entry point for fscprobe."""

import asyncio
import os
from pathlib import Path

import click
from pydantic import ValidationError

from fscprobe.core.config.settings import Settings
from fscprobe.core.exceptions.errors import (
    BuildFailedError,
    ConfigurationError,
    InvalidInputError,
    ProjectEvaluationError,
    ToolchainError,
)
from fscprobe.core.logger.logger import get_logger, setup_logging
from fscprobe.probe.engine import create_engine
from fscprobe.probe.pipeline import CompilerArgsProbe
from fscprobe.probe.reporter import (
    ExitCode,
    Reporter,
    build_failed_message,
    evaluation_failed_message,
    not_found_message,
    toolchain_unavailable_message,
    usage_message,
)
from fscprobe.probe.toolchain import ToolchainLocator

logger = get_logger(__name__)


def parse_properties(values: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated NAME=VALUE options.

    Raises:
        InvalidInputError: If a value has no '=' or an empty name.
    """
    properties: dict[str, str] = {}
    for value in values:
        name, sep, prop_value = value.partition("=")
        if not sep or not name.strip():
            raise InvalidInputError(f"Invalid property '{value}': expected NAME=VALUE")
        properties[name.strip()] = prop_value
    return properties


def load_settings(config_path: Path | None, verbose: bool) -> Settings:
    """Load settings and apply command line overrides."""
    try:
        settings = Settings.load(config_path)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e.errors()[0]['msg']}",
            config_key=str(config_path) if config_path else None,
        ) from e
    if verbose:
        settings.logging.level = "DEBUG"
    return settings


class ProbeCommand(click.Command):
    """Command that reports a rejected command line as a usage error (exit 1)."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            logger.debug(f"Rejected command line: {e.format_message()}")
            click.echo(usage_message(), err=True)
            ctx.exit(ExitCode.USAGE)


@click.command(cls=ProbeCommand, context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("project", required=False)
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="YAML settings file")
@click.option("--property", "-p", "properties", multiple=True, metavar="NAME=VALUE", help="Global property for the root project")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging on stderr")
@click.option("--version", is_flag=True, help="Show version")
@click.pass_context
def main(
    ctx: click.Context,
    project: str | None,
    config_path: Path | None,
    properties: tuple[str, ...],
    verbose: bool,
    version: bool,
) -> None:
    """fscprobe - print the F# compiler arguments MSBuild computes for PROJECT.

    Builds PROJECT and every project it references, then prints the Fsc
    command line arguments recorded for each F# project in the graph.
    """
    if version:
        from fscprobe import __version__

        click.echo(f"fscprobe version {__version__}")
        ctx.exit(ExitCode.SUCCESS)

    if not project:
        click.echo(usage_message(), err=True)
        ctx.exit(ExitCode.USAGE)

    project_path = os.path.abspath(project)
    if not os.path.isfile(project_path):
        click.echo(not_found_message(project_path), err=True)
        ctx.exit(ExitCode.NOT_FOUND)

    try:
        global_properties = parse_properties(properties)
        settings = load_settings(config_path, verbose)
    except (InvalidInputError, ConfigurationError) as e:
        click.echo(e.message, err=True)
        ctx.exit(ExitCode.USAGE)

    setup_logging(settings.logging)

    try:
        toolchain = ToolchainLocator(settings.toolchain).ensure_ready()
    except ToolchainError as e:
        click.echo(toolchain_unavailable_message(e.message), err=True)
        ctx.exit(ExitCode.TOOLCHAIN_UNAVAILABLE)

    engine = create_engine(toolchain, settings.build)
    probe = CompilerArgsProbe.from_settings(engine, settings.build, global_properties)

    try:
        report = asyncio.run(probe.run(project_path))
    except InvalidInputError:
        click.echo(not_found_message(project_path), err=True)
        ctx.exit(ExitCode.NOT_FOUND)
    except ProjectEvaluationError as e:
        logger.debug(f"Evaluation failed: {e}")
        click.echo(evaluation_failed_message(project_path, e.message), err=True)
        ctx.exit(ExitCode.EVALUATION_FAILED)
    except BuildFailedError as e:
        logger.debug(f"Build outcome: {e.outcome.to_dict() if e.outcome else None}")
        click.echo(build_failed_message(project_path), err=True)
        ctx.exit(ExitCode.BUILD_FAILED)

    Reporter().write(report.results)
    ctx.exit(ExitCode.SUCCESS)


if __name__ == "__main__":
    main()
