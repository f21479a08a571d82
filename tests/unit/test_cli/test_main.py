"""Tests for CLI main module."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from fscprobe.cli.main import load_settings, main, parse_properties
from fscprobe.core.exceptions.errors import ConfigurationError, InvalidInputError, ToolchainError
from fscprobe.probe.toolchain import Toolchain

TOOLCHAIN = Toolchain(dotnet_path=Path("/usr/share/dotnet/dotnet"), sdk_version="8.0.100")


@pytest.fixture
def probe_env(fake_engine):
    """Patch toolchain setup and engine creation to use the fake engine."""
    with patch("fscprobe.cli.main.setup_logging"), \
            patch("fscprobe.cli.main.ToolchainLocator") as mock_locator, \
            patch("fscprobe.cli.main.create_engine", return_value=fake_engine) as mock_create:
        mock_locator.return_value.ensure_ready.return_value = TOOLCHAIN
        yield mock_locator, mock_create


class TestArguments:
    """Test argument handling before any build runs."""

    def test_version_flag(self) -> None:
        """Test version flag."""
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_no_argument_prints_usage(self) -> None:
        """Without a project the usage line goes to stderr with exit code 1."""
        runner = CliRunner()
        result = runner.invoke(main, [])

        assert result.exit_code == 1
        assert result.stdout == ""
        assert result.stderr == "Usage: fscprobe <path-to-project-file>\n"

    def test_missing_project(self, temp_dir: Path) -> None:
        """A project path that does not exist exits with code 2."""
        missing = temp_dir / "Missing.fsproj"

        runner = CliRunner()
        result = runner.invoke(main, [str(missing)])

        assert result.exit_code == 2
        assert result.stdout == ""
        assert result.stderr == f"Project file '{missing}' not found.\n"

    def test_directory_is_not_a_project(self, temp_dir: Path) -> None:
        """A directory is reported as not found."""
        runner = CliRunner()
        result = runner.invoke(main, [str(temp_dir)])

        assert result.exit_code == 2

    @pytest.mark.parametrize("extra", [["extra"], ["--bogus"], ["-c"]])
    def test_rejected_command_line_is_usage_error(self, make_project, extra) -> None:
        """Extra arguments and unknown options exit with code 1, not 2."""
        app = make_project("App")

        runner = CliRunner()
        result = runner.invoke(main, [app.path, *extra])

        assert result.exit_code == 1
        assert result.stdout == ""
        assert result.stderr == "Usage: fscprobe <path-to-project-file>\n"

    def test_invalid_property(self, make_project) -> None:
        """A malformed -p value is a usage error."""
        app = make_project("App")

        runner = CliRunner()
        result = runner.invoke(main, [app.path, "-p", "NoEquals"])

        assert result.exit_code == 1
        assert "expected NAME=VALUE" in result.stderr


class TestProbe:
    """Test full runs against the fake engine."""

    def test_single_project_arguments(self, make_project, probe_env) -> None:
        """Arguments of a single F# project are printed in order."""
        app = make_project("App", arguments=["-o:obj/App.dll", "--target:exe", "Program.fs"])

        runner = CliRunner()
        result = runner.invoke(main, [app.path])

        assert result.exit_code == 0
        assert result.stdout == (
            f"Project: {app.path}\n"
            "  arg: -o:obj/App.dll\n"
            "  arg: --target:exe\n"
            "  arg: Program.fs\n"
        )
        assert result.stderr == ""

    def test_project_without_arguments(self, make_project, probe_env) -> None:
        """An F# project that recorded nothing gets the none marker."""
        app = make_project("App")

        runner = CliRunner()
        result = runner.invoke(main, [app.path])

        assert result.exit_code == 0
        assert result.stdout == f"Project: {app.path}\n  FscCommandLineArgs: <none>\n"

    def test_mixed_graph(self, make_project, probe_env) -> None:
        """Only F# projects are reported; each appears once."""
        core = make_project("Core", arguments=["Core.fs"])
        csharp = make_project("Interop", language="C#", extension=".csproj", references=[core])
        app = make_project("App", references=[csharp, core], arguments=["App.fs"])

        runner = CliRunner()
        result = runner.invoke(main, [app.path])

        assert result.exit_code == 0
        assert result.stdout.count("Project: ") == 2
        assert f"Project: {core.path}\n  arg: Core.fs\n" in result.stdout
        assert csharp.path not in result.stdout

    def test_no_fsharp_projects(self, make_project, probe_env) -> None:
        """A graph without F# nodes prints nothing and succeeds."""
        lib = make_project("Lib", language="C#", extension=".csproj")

        runner = CliRunner()
        result = runner.invoke(main, [lib.path])

        assert result.exit_code == 0
        assert result.stdout == ""

    def test_build_failure(self, make_project, probe_env) -> None:
        """A failing dependency exits with code 3 and prints no report."""
        lib = make_project("Lib", fail_build=True, arguments=["Lib.fs"])
        app = make_project("App", references=[lib])

        runner = CliRunner()
        result = runner.invoke(main, [app.path])

        assert result.exit_code == 3
        assert result.stdout == ""
        assert result.stderr == f"Build failed for '{app.path}'.\n"

    def test_evaluation_failure(self, make_project, probe_env) -> None:
        """An unloadable project exits with code 4."""
        app = make_project("App", fail_evaluation=True)

        runner = CliRunner()
        result = runner.invoke(main, [app.path])

        assert result.exit_code == 4
        assert result.stderr.startswith(f"Failed to evaluate project '{app.path}': ")
        assert "MSB4025" in result.stderr

    def test_toolchain_unavailable(self, make_project, probe_env) -> None:
        """A missing SDK exits with code 5."""
        mock_locator, mock_create = probe_env
        mock_locator.return_value.ensure_ready.side_effect = ToolchainError(
            "Could not find the dotnet executable."
        )
        app = make_project("App")

        runner = CliRunner()
        result = runner.invoke(main, [app.path])

        assert result.exit_code == 5
        assert result.stderr == "Build toolchain not available: Could not find the dotnet executable.\n"
        mock_create.assert_not_called()

    def test_properties_reach_root_evaluation(self, make_project, probe_env, fake_engine) -> None:
        """-p values are applied as global properties of the root."""
        app = make_project("App")

        runner = CliRunner()
        result = runner.invoke(main, [app.path, "-p", "Configuration=Release"])

        assert result.exit_code == 0
        assert fake_engine.evaluations[0] == (app.path, {"Configuration": "Release"})


class TestHelpers:
    """Test CLI helper functions."""

    def test_parse_properties(self) -> None:
        assert parse_properties(("A=1", "B=", "C=x=y")) == {"A": "1", "B": "", "C": "x=y"}

    def test_parse_properties_rejects_empty_name(self) -> None:
        with pytest.raises(InvalidInputError):
            parse_properties(("=1",))

    def test_load_settings_verbose(self, temp_dir: Path) -> None:
        config = temp_dir / "fscprobe.yaml"
        config.write_text("logging:\n  level: INFO\n", encoding="utf-8")

        settings = load_settings(config, verbose=True)

        assert settings.logging.level == "DEBUG"

    def test_load_settings_invalid(self, temp_dir: Path) -> None:
        config = temp_dir / "fscprobe.yaml"
        config.write_text("build:\n  max_parallel: 0\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_settings(config, verbose=False)


@patch("fscprobe.cli.main.asyncio.run")
def test_unexpected_error_not_swallowed(mock_run: MagicMock, make_project, probe_env) -> None:
    """Errors outside the known categories propagate out of the command."""
    mock_run.side_effect = RuntimeError("boom")
    app = make_project("App")

    runner = CliRunner()
    result = runner.invoke(main, [app.path])

    assert result.exit_code != 0
    assert isinstance(result.exception, RuntimeError)
