"""Tests for the toolpod CLI."""

import pytest
from click.testing import CliRunner

from toolpod import __version__
from toolpod.cli.main import _parse_arguments, cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    # keep config discovery away from any toolpod.yaml above the test run
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TOOLPOD_LOG_LEVEL", raising=False)
    return CliRunner()


class TestParseArguments:
    def test_json_values_keep_their_type(self):
        args = _parse_arguments(("a=1", "flag=true", "name=Ada"), None)
        assert args == {"a": 1, "flag": True, "name": "Ada"}

    def test_json_object_merged_with_pairs(self):
        args = _parse_arguments(("b=2",), '{"a": 1, "b": 0}')
        assert args == {"a": 1, "b": 2}


class TestCli:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_list_demo_tools(self, runner):
        result = runner.invoke(cli, ["list"])

        assert result.exit_code == 0
        assert "echo" in result.output
        assert "sleep" in result.output

    def test_call_echo(self, runner):
        result = runner.invoke(cli, ["call", "echo", "-a", "text=hello"])

        assert result.exit_code == 0
        assert result.output.strip() == "hello"

    def test_call_with_json(self, runner):
        result = runner.invoke(cli, ["call", "add", "--json", '{"a": 1.5, "b": 2}'])

        assert result.exit_code == 0
        assert result.output.strip() == "3.5"

    def test_call_unknown_tool(self, runner):
        result = runner.invoke(cli, ["call", "nope"])

        assert result.exit_code == 1
        assert "ToolNotFound" in result.output

    def test_call_missing_argument(self, runner):
        result = runner.invoke(cli, ["call", "echo"])

        assert result.exit_code == 1
        assert "InvalidArgument" in result.output

    def test_bad_arg_syntax(self, runner):
        result = runner.invoke(cli, ["call", "echo", "-a", "novalue"])
        assert result.exit_code == 2

    def test_config_file_selects_tools(self, runner, tmp_path):
        config = tmp_path / "pod.yaml"
        config.write_text("tools: toolpod.no_such_module:TOOLS\n")

        result = runner.invoke(cli, ["list", "-c", str(config)])

        assert result.exit_code == 1
        assert "Config error" in result.output
