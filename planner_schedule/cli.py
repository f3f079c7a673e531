from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer

from planner_schedule.core.errors import InputError, PlanError, PlanLoadError
from planner_schedule.core.io.dump_plan import dump_plan_yaml, plan_to_dict, plan_to_json, plan_to_yaml
from planner_schedule.core.io.load_input import load_input
from planner_schedule.core.model import ProjectPlan
from planner_schedule.core.plan.generate_plan import generate_project_plan
from planner_schedule.core.team.role_table import RoleTableError, load_and_merge
from planner_schedule.core.validate.validate_input import summarize_input, validate_input
from planner_schedule.utils.logging import setup_logging

app = typer.Typer(add_completion=False, no_args_is_help=True)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@app.callback()
def _callback(
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level: DEBUG|INFO|WARNING|ERROR"),
) -> None:
    """Project scheduling CLI."""
    if log_level.upper() not in LOG_LEVELS:
        _print_errors(
            [
                InputError(
                    code="E_UNKNOWN_LOG_LEVEL",
                    message=f"unknown log level: {log_level} (choose one of: {', '.join(LOG_LEVELS)})",
                    path="log_level",
                )
            ]
        )
        raise typer.Exit(code=2)
    setup_logging(log_level)


def _to_item(e: PlanError) -> dict:
    if isinstance(e, PlanLoadError):
        source = "load"
    elif isinstance(e, InputError):
        source = "validate"
    else:
        source = "graph"
    return {
        "code": e.code,
        "message": e.message,
        "file": e.file,
        "path": e.path,
        "severity": "error",
        "source": source,
    }


def _emit_json(command: str, ok: bool, *, exit_code: int, errors: list[PlanError], **extra: Any) -> None:
    payload = {
        "tool": "planner-schedule",
        "command": command,
        "ok": ok,
        "error_count": len(errors),
        "errors": [_to_item(e) for e in errors],
        **extra,
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    raise typer.Exit(code=exit_code)


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a project document (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate a project document (config, features, threats)."""
    if format not in ("text", "json"):
        _print_errors([_unknown_format("E_VALIDATE_UNKNOWN_FORMAT", format, ("text", "json"))])
        raise typer.Exit(code=2)

    try:
        raw = load_input(path)
    except PlanLoadError as e:
        if format == "json":
            _emit_json("validate", False, exit_code=1, errors=[e], summary=None)
        _print_errors([e])
        raise typer.Exit(code=1)

    project, errors = validate_input(raw)
    if errors or project is None:
        if format == "json":
            _emit_json("validate", False, exit_code=2, errors=list(errors), summary=None)
        _print_errors(list(errors))
        raise typer.Exit(code=2)

    if format == "text":
        typer.echo(summarize_input(project))
        return

    summary = {
        "feature_count": len(project.features),
        "threat_count": len(project.threats),
        "team_size": project.config.team_size,
        "sprint_duration_weeks": project.config.sprint_duration_weeks,
        "project_start_date": project.config.project_start_date.isoformat(),
    }
    _emit_json("validate", True, exit_code=0, errors=[], summary=summary)


@app.command("plan")
def plan(
    path: str = typer.Argument(..., help="Path to a project document (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json|yaml"),
    out: Optional[str] = typer.Option(None, "--out", help="Write the plan to this file (.yaml/.yml/.json)"),
    role_file: Optional[str] = typer.Option(
        None,
        "--role-file",
        help="Optional YAML file to add/override category -> skill patterns",
    ),
) -> None:
    """Build the task graph, critical path, sprints, team allocation and risk register."""
    if format not in ("text", "json", "yaml"):
        _print_errors([_unknown_format("E_PLAN_UNKNOWN_FORMAT", format, ("text", "json", "yaml"))])
        raise typer.Exit(code=2)

    try:
        raw = load_input(path)
    except PlanLoadError as e:
        if format == "json":
            _emit_json("plan", False, exit_code=1, errors=[e], plan=None)
        _print_errors([e])
        raise typer.Exit(code=1)

    role_table = _load_role_table(role_file, file=raw.get("__file__"))

    result, errors = generate_project_plan(raw, role_table=role_table)
    if errors or result is None:
        if format == "json":
            _emit_json("plan", False, exit_code=2, errors=errors, plan=None)
        _print_errors(errors)
        raise typer.Exit(code=2)

    data = plan_to_dict(result)
    for w in result.warnings:
        typer.echo(f"WARN: {w}", err=True)

    if out is not None:
        _write_plan(out, data)
        typer.echo(f"OK: wrote plan to {out}")
        return

    if format == "json":
        _emit_json("plan", True, exit_code=0, errors=[], plan=data)
    if format == "yaml":
        typer.echo(plan_to_yaml(data), nl=False)
        return
    typer.echo(summarize_plan(result))


@app.command("roles")
def roles(
    role_file: Optional[str] = typer.Option(
        None,
        "--role-file",
        help="Optional YAML file to add/override category -> skill patterns",
    ),
) -> None:
    """List the task category -> skill pattern table used for team allocation."""
    table = _load_role_table(role_file, file=None)

    typer.echo("Roles:")
    for category in sorted(table.keys()):
        typer.echo(f"- {category}: {', '.join(table[category])}")


def summarize_plan(result: ProjectPlan) -> str:
    cp = result.critical_path
    lines = [
        f"OK: {len(result.tasks)} tasks in {len(result.sprints)} sprints",
        f"Critical path: {' -> '.join(cp.critical_tasks)}",
        f"Duration: {cp.total_duration} days (buffer {cp.buffer_days} days)",
    ]
    for s in result.sprints:
        lines.append(
            f"Sprint {s.sprint_number} ({s.start_date.isoformat()}..{s.end_date.isoformat()}): "
            f"{len(s.tasks)} tasks, {s.story_points}/{s.capacity} points"
        )
    for m in result.team_allocation.roles:
        flag = " OVERALLOCATED" if m.overallocated else ""
        lines.append(f"Team: {m.role}: {m.total_hours}h ({m.utilization_percentage}%){flag}")
    if result.team_allocation.unassigned_tasks:
        lines.append("Unassigned: " + ", ".join(result.team_allocation.unassigned_tasks))
    lines.append(f"Risks: {len(result.risk_register)}")
    return "\n".join(lines)


def _load_role_table(role_file: Optional[str], *, file: Optional[str]) -> dict[str, list[str]]:
    try:
        return load_and_merge(role_file)
    except FileNotFoundError:
        _print_errors(
            [
                PlanLoadError(
                    code="E_ROLE_FILE_NOT_FOUND",
                    message=f"role file not found: {role_file}",
                    file=file,
                    path="role_file",
                )
            ]
        )
        raise typer.Exit(code=1)
    except RoleTableError as e:
        _print_errors(
            [
                InputError(
                    code="E_ROLE_FILE_INVALID",
                    message=str(e),
                    file=file,
                    path="role_file",
                )
            ]
        )
        raise typer.Exit(code=2)


def _write_plan(path: str, data: dict[str, Any]) -> None:
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    if p.suffix.lower() == ".json":
        p.write_text(plan_to_json(data) + "\n", encoding="utf-8")
    else:
        dump_plan_yaml(data, str(p))


def _unknown_format(code: str, format: str, choices: tuple[str, ...]) -> InputError:
    return InputError(
        code=code,
        message=f"unknown format: {format} (choose one of: {', '.join(choices)})",
        file=None,
        path="format",
    )


def _print_errors(errors: list[PlanError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="planner-schedule")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
