from typer.testing import CliRunner

from planner_schedule.cli import app

from helpers import example

runner = CliRunner()


def test_roles_lists_default_table():
    r = runner.invoke(app, ["roles"])
    assert r.exit_code == 0, r.stdout + r.stderr
    assert "Roles:" in r.stdout
    assert "- backend: backend" in r.stdout


def test_roles_accepts_role_file():
    r = runner.invoke(app, ["roles", "--role-file", example("roles.yaml")])
    assert r.exit_code == 0, r.stdout + r.stderr
    assert "- testing: *testing" in r.stdout
    assert "- documentation: technical_writing" in r.stdout


def test_unknown_log_level_is_rejected():
    r = runner.invoke(app, ["--log-level", "chatty", "roles"])
    assert r.exit_code == 2
    assert "E_UNKNOWN_LOG_LEVEL" in (r.stdout + r.stderr)


def test_roles_rejects_unparseable_role_file(tmp_path):
    p = tmp_path / "roles.yaml"
    p.write_text("testing: [unclosed\n", encoding="utf-8")
    r = runner.invoke(app, ["roles", "--role-file", str(p)])
    assert r.exit_code == 2
    assert "E_ROLE_FILE_INVALID" in (r.stdout + r.stderr)


def test_roles_rejects_non_utf8_role_file(tmp_path):
    p = tmp_path / "roles.yaml"
    p.write_bytes(b"testing: [\xff\xfe]\n")
    r = runner.invoke(app, ["roles", "--role-file", str(p)])
    assert r.exit_code == 2
    assert "E_ROLE_FILE_INVALID" in (r.stdout + r.stderr)


def test_roles_rejects_directory_as_role_file(tmp_path):
    r = runner.invoke(app, ["roles", "--role-file", str(tmp_path)])
    assert r.exit_code == 2
    assert "E_ROLE_FILE_INVALID" in (r.stdout + r.stderr)
