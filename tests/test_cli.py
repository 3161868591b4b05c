"""Tests for the pipelaunch command line."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from pipelaunch.cli import entrypoint, main
from pipelaunch.errors import InstanceLaunchTimeout, InstanceUnreachable, UnsupportedZone
from pipelaunch.models import InstanceRecord


@pytest.fixture(autouse=True)
def _isolate(tmp_path: Path):
    """Keep the real home config and root log handlers out of CLI runs."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    with patch("pipelaunch.config.PIPELAUNCH_HOME", str(tmp_path / "home")):
        yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def files(tmp_path: Path) -> dict:
    artifact = tmp_path / "pipeline.yaml"
    artifact.write_text("threads: 8\n")
    key = tmp_path / "lab-key.pem"
    key.write_text("KEY")
    return {"config": str(artifact), "key": str(key)}


def _run_args(files: dict, *extra: str) -> list[str]:
    return [
        "run", "-b", "my-data", "-c", files["config"], "-k", files["key"],
        "-t", "m5.large", *extra,
    ]


class TestRunCommand:
    @patch("pipelaunch.cli.run.make_provider")
    @patch("pipelaunch.cli.run.Orchestrator")
    def test_success(self, mock_orch: MagicMock, mock_provider: MagicMock, runner, files) -> None:
        def fake_run(request, manual=False, ctx=None):
            ctx.instance = InstanceRecord(id="i-0abc")
            ctx.login_target = "ubuntu@ec2-host"
            return ctx

        mock_orch.return_value.run.side_effect = fake_run
        result = runner.invoke(main, _run_args(files))

        assert result.exit_code == 0, result.output
        assert "Pipeline started" in result.output
        mock_provider.assert_called_once_with("us-west-2a")
        request = mock_orch.return_value.run.call_args[0][0]
        assert request.iam_profile == "pipelaunch-s3-access"
        assert request.local_input_path is None

    @patch("pipelaunch.cli.run.make_provider")
    @patch("pipelaunch.cli.run.Orchestrator")
    def test_options_reach_request(self, mock_orch, mock_provider, runner, files, tmp_path) -> None:
        def fake_run(request, manual=False, ctx=None):
            ctx.instance = InstanceRecord(id="i-0abc")
            ctx.login_target = "ubuntu@ec2-host"
            return ctx

        mock_orch.return_value.run.side_effect = fake_run
        result = runner.invoke(main, _run_args(
            files, "-z", "us-east-1a", "--iam-profile", "custom", "-i", str(tmp_path), "--manual",
        ))

        assert result.exit_code == 0, result.output
        assert "Instance ready" in result.output
        request = mock_orch.return_value.run.call_args[0][0]
        assert request.zone == "us-east-1a"
        assert request.iam_profile == "custom"
        assert request.local_input_path == tmp_path
        assert mock_orch.return_value.run.call_args[1]["manual"] is True

    def test_missing_required_exits_1(self, runner, files) -> None:
        result = runner.invoke(main, ["run", "-b", "my-data", "-k", files["key"], "-t", "m5.large"])
        assert result.exit_code == 1
        assert "--config" in result.output

    @patch("pipelaunch.cli.run.make_provider")
    @patch("pipelaunch.cli.run.Orchestrator")
    def test_failure_after_launch_warns_instance_left(self, mock_orch, mock_provider, runner, files) -> None:
        def fake_run(request, manual=False, ctx=None):
            ctx.instance = InstanceRecord(id="i-0abc")
            raise InstanceLaunchTimeout("instance running", ["i-0abc"], 15, 20)

        mock_orch.return_value.run.side_effect = fake_run
        result = runner.invoke(main, _run_args(files))

        assert result.exit_code == 1
        assert "pipelaunch terminate i-0abc" in result.output

    @patch("pipelaunch.cli.run.make_provider")
    @patch("pipelaunch.cli.run.Orchestrator")
    def test_unreachable_has_no_left_running_notice(self, mock_orch, mock_provider, runner, files) -> None:
        def fake_run(request, manual=False, ctx=None):
            ctx.instance = InstanceRecord(id="i-0abc")
            raise InstanceUnreachable("i-0abc", "54.1.2.3", 20)

        mock_orch.return_value.run.side_effect = fake_run
        result = runner.invoke(main, _run_args(files))

        assert result.exit_code == 1
        assert "Resources left running" not in result.output

    @patch("pipelaunch.cli.run.make_provider")
    @patch("pipelaunch.cli.run.Orchestrator")
    def test_unsupported_zone(self, mock_orch, mock_provider, runner, files) -> None:
        mock_orch.return_value.run.side_effect = UnsupportedZone("eu-west-1a", "eu-west-1")
        result = runner.invoke(main, _run_args(files, "-z", "eu-west-1a"))
        assert result.exit_code == 1
        assert "Resources left running" not in result.output


class TestOtherCommands:
    @patch("pipelaunch.cli.instances.make_provider")
    @patch("pipelaunch.cli.instances.Orchestrator")
    def test_terminate(self, mock_orch, mock_provider, runner) -> None:
        result = runner.invoke(main, ["terminate", "i-1", "i-2"])
        assert result.exit_code == 0, result.output
        mock_orch.return_value.terminate.assert_called_once_with(["i-1", "i-2"])

    @patch("pipelaunch.cli.instances.make_provider")
    @patch("pipelaunch.cli.instances.run_preflight")
    def test_preflight_lists_strays(self, mock_preflight, mock_provider, runner) -> None:
        from pipelaunch.preflight import PreflightResult

        mock_preflight.return_value = PreflightResult(tools=[], stray_instances=["i-old"])
        result = runner.invoke(main, ["preflight"])
        assert result.exit_code == 0, result.output
        assert "i-old" in result.output

    def test_zones(self, runner) -> None:
        result = runner.invoke(main, ["zones"])
        assert result.exit_code == 0
        assert "us-west-2" in result.output
        assert "unavailable" in result.output


class TestEntrypoint:
    def test_usage_error_exits_1(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            entrypoint(["run", "--no-such-flag"])
        assert excinfo.value.code == 1

    def test_usage_error_is_timestamped(self, capsys) -> None:
        with pytest.raises(SystemExit):
            entrypoint(["run", "--no-such-flag"])
        err = capsys.readouterr().err
        assert re.search(
            r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] ERROR: .*--no-such-flag", err, re.M
        )

    def test_unknown_command_is_timestamped(self, capsys) -> None:
        with pytest.raises(SystemExit) as excinfo:
            entrypoint(["launch"])
        assert excinfo.value.code == 1
        err = capsys.readouterr().err
        assert re.search(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] ERROR: .*launch", err, re.M)
        assert "Usage:" not in err

    def test_help_exits_0(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            entrypoint(["--help"])
        assert excinfo.value.code == 0
