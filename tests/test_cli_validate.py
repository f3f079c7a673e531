import json

from typer.testing import CliRunner

from planner_schedule.cli import app

from helpers import example

runner = CliRunner()


def test_cli_validate_success():
    r = runner.invoke(app, ["validate", example("single-feature.yaml")])
    assert r.exit_code == 0
    assert "OK: 1 features" in r.stdout
    assert "Tasks: 9" in r.stdout


def test_cli_validate_failure():
    r = runner.invoke(app, ["validate", example("invalid-unknown-dep.yaml")])
    assert r.exit_code == 2
    assert "E_UNKNOWN_DEPENDENCY" in (r.stdout + r.stderr)


def test_cli_validate_missing_file():
    r = runner.invoke(app, ["validate", example("nope.yaml")])
    assert r.exit_code == 1
    assert "E_FILE_NOT_FOUND" in (r.stdout + r.stderr)


def test_cli_validate_json_success():
    r = runner.invoke(app, ["validate", example("basic-project.yaml"), "--format", "json"])
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert payload["command"] == "validate"
    assert payload["ok"] is True
    assert payload["errors"] == []
    assert payload["summary"]["feature_count"] == 3
    assert payload["summary"]["project_start_date"] == "2024-03-04"


def test_cli_validate_json_failure_contains_codes():
    r = runner.invoke(app, ["validate", example("invalid-config.yaml"), "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["ok"] is False
    assert payload["error_count"] == 3
    assert {e["code"] for e in payload["errors"]} == {"E_INVALID_CONFIG"}
    assert {e["source"] for e in payload["errors"]} == {"validate"}


def test_cli_validate_unknown_format():
    r = runner.invoke(app, ["validate", example("single-feature.yaml"), "--format", "xml"])
    assert r.exit_code == 2
    assert "E_VALIDATE_UNKNOWN_FORMAT" in (r.stdout + r.stderr)
