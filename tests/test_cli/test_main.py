"""Tests for CLI main module."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner

from vmimage.cli.main import _run_cli_command, app, supervise_app
from vmimage.errors import MalformedDescriptor, UnknownStageReference


FIXTURES = Path(__file__).parent.parent / "fixtures"

runner = CliRunner()


@patch("vmimage.cli.main.console")
def test_run_cli_command_success(mock_console):
    """Test the CLI command runner on a successful execution."""
    mock_handler = MagicMock()

    _run_cli_command(mock_handler, descriptor_path="image.yaml", output_dir="out")

    mock_handler.assert_called_once_with(descriptor_path="image.yaml", output_dir="out")
    mock_console.print.assert_not_called()


@patch("vmimage.cli.main.console")
def test_run_cli_command_build_error(mock_console):
    """Test the CLI command runner when a build error is raised."""
    mock_handler = MagicMock(side_effect=UnknownStageReference("unknown stage 'x'"))

    with pytest.raises(typer.Exit) as exc_info:
        _run_cli_command(mock_handler, descriptor_path="image.yaml")

    mock_console.print.assert_called_once_with("[red]Error:[/red] unknown stage 'x'")
    assert exc_info.value.exit_code == 4


@patch("vmimage.cli.main.console")
def test_run_cli_command_escapes_markup(mock_console):
    mock_handler = MagicMock(side_effect=MalformedDescriptor("bad [key]", field="files"))

    with pytest.raises(typer.Exit) as exc_info:
        _run_cli_command(mock_handler)

    printed = mock_console.print.call_args[0][0]
    assert "bad \\[key]" in printed
    assert "field: files" in printed
    assert exc_info.value.exit_code == 3


@patch("vmimage.cli.commands.setup_logging")
class TestBuildImageCommand:
    """Test the build-image command line."""

    def test_success(self, mock_setup_logging, tmp_path):
        out = tmp_path / "out"

        result = runner.invoke(app, [str(FIXTURES / "vm-image-spec.yaml"), str(out)])

        assert result.exit_code == 0
        assert (out / "Dockerfile").exists()
        assert (out / "supervision.yaml").exists()
        assert (out / "pgbouncer.ini").exists()

    def test_config_option(self, mock_setup_logging, tmp_path):
        out = tmp_path / "out"

        result = runner.invoke(
            app,
            [str(FIXTURES / "vm-image-spec.yaml"), str(out), "--config", str(FIXTURES / "builder.yaml")],
        )

        assert result.exit_code == 0
        mock_setup_logging.assert_called_once_with("DEBUG")
        assert "neondatabase/compute-node-v16" in (out / "Dockerfile").read_text()

    def test_config_from_environment(self, mock_setup_logging, tmp_path):
        result = runner.invoke(
            app,
            [str(FIXTURES / "vm-image-spec.yaml"), str(tmp_path / "out")],
            env={"VMIMAGE_CONFIG": str(FIXTURES / "builder.yaml")},
        )

        assert result.exit_code == 0
        mock_setup_logging.assert_called_once_with("DEBUG")

    def test_malformed_descriptor_exit_code(self, mock_setup_logging, tmp_path):
        descriptor = tmp_path / "image.yaml"
        descriptor.write_text("commands:\n  - name: a\n")
        out = tmp_path / "out"

        result = runner.invoke(app, [str(descriptor), str(out)])

        assert result.exit_code == 3
        assert not out.exists()

    def test_unknown_stage_exit_code(self, mock_setup_logging, tmp_path):
        descriptor = tmp_path / "image.yaml"
        descriptor.write_text("merge: |\n  COPY --from=nowhere /a /b\n")

        result = runner.invoke(app, [str(descriptor), str(tmp_path / "out")])

        assert result.exit_code == 4

    def test_invalid_config_exit_code(self, mock_setup_logging, tmp_path):
        config = tmp_path / "builder.yaml"
        config.write_text("log_level: LOUD\n")

        result = runner.invoke(
            app,
            [str(FIXTURES / "vm-image-spec.yaml"), str(tmp_path / "out"), "-c", str(config)],
        )

        assert result.exit_code == 7

    def test_missing_arguments(self, mock_setup_logging):
        result = runner.invoke(app, [])

        assert result.exit_code != 0


@patch("vmimage.cli.commands.setup_logging")
def test_supervise_invalid_table(mock_setup_logging, tmp_path):
    """Test that an unreadable supervision table is a configuration error."""
    result = runner.invoke(supervise_app, [str(tmp_path / "missing.yaml")])

    assert result.exit_code == 7


def test_supervise_unknown_log_level(tmp_path):
    table = tmp_path / "supervision.yaml"
    table.write_text("entries: []\n")

    result = runner.invoke(supervise_app, [str(table), "--log-level", "LOUD"])

    assert result.exit_code == 7
