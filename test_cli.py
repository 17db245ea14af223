"""
CLI Tests

Runs the typer commands against the network-free test profile.
"""

import json

from typer.testing import CliRunner

from maki.cli import app

runner = CliRunner()


def test_profiles_command():
    result = runner.invoke(app, ["profiles"])

    assert result.exit_code == 0
    assert "dev" in result.output
    assert "Backend: mock" in result.output


def test_run_with_mock_profile(tmp_path, monkeypatch):
    monkeypatch.setenv("MAKI_WORKSPACE", str(tmp_path))

    result = runner.invoke(app, ["run", "hello", "--profile", "test", "--format", "json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout[result.stdout.index("{"):])
    assert payload["task_type"] == "simple"
    assert payload["agents_used"] == ["coordinator", "smart_agent"]
    assert payload["output"] == "[Mock response]"


def test_unknown_profile_exits_with_error():
    result = runner.invoke(app, ["run", "hello", "--profile", "nope"])
    assert result.exit_code == 1


def test_bad_format_exits_with_error():
    result = runner.invoke(app, ["run", "hello", "--format", "xml"])
    assert result.exit_code == 1


def test_threads_disabled_in_test_profile():
    result = runner.invoke(app, ["threads", "--profile", "test"])

    assert result.exit_code == 0
    assert "disabled" in result.output
