from datetime import date
from pathlib import Path

import pytest

from planner_schedule.core.graph.build_graph import build_task_graph
from planner_schedule.core.model import Feature, PlanConfig, ProjectInput, RosterEntry
from planner_schedule.core.schedule.critical_path import analyze_critical_path
from planner_schedule.core.schedule.sprints import allocate_sprints
from planner_schedule.core.team.allocate_team import allocate_team
from planner_schedule.core.team.role_table import (
    DEFAULT_ROLE_TABLE,
    UNASSIGNED,
    RoleTableError,
    default_roster,
    load_and_merge,
    load_role_file,
    resolve_role_table,
)

from helpers import example, load_project


def _team(project, roster=None, table=None):
    cfg = project.config
    graph = build_task_graph(project.features, project.threats)
    cp = analyze_critical_path(graph)
    allocation = allocate_sprints(
        graph,
        cp,
        team_size=cfg.team_size,
        sprint_weeks=cfg.sprint_duration_weeks,
        start_date=cfg.project_start_date,
    )
    team, warnings = allocate_team(
        graph,
        allocation,
        roster=roster or cfg.roster or default_roster(cfg.team_size),
        role_table=table or dict(DEFAULT_ROLE_TABLE),
        sprint_weeks=cfg.sprint_duration_weeks,
    )
    return graph, allocation, team, warnings


def test_default_roster_follows_team_size():
    assert [m.name for m in default_roster(3)] == ["Tech Lead", "Backend Dev #1", "Backend Dev #2"]
    assert len(default_roster(6)) == 6
    assert [m.name for m in default_roster(8)][-2:] == ["Backend Dev #3", "Backend Dev #4"]


def test_resolve_role_table_uses_first_matching_pattern():
    roster = [
        RosterEntry(name="Lead", skills=["design"]),
        RosterEntry(name="Arch", skills=["architecture"]),
        RosterEntry(name="QA", skills=["security_testing"]),
    ]
    resolved = resolve_role_table(
        roster, {"design": ["architecture", "design"], "testing": ["*testing"], "devops": ["devops"]}
    )
    assert resolved == {"design": ["Arch"], "testing": ["QA"], "devops": []}


def test_single_feature_team_allocation():
    graph, allocation, team, warnings = _team(load_project("single-feature.yaml"))
    by_role = {m.role: m for m in team.roles}

    assert by_role["Tech Lead"].assigned_tasks == ["TASK-001"]
    # backend work round-robins across the two backend developers
    assert by_role["Backend Dev #1"].assigned_tasks == ["TASK-002"]
    assert by_role["Backend Dev #2"].assigned_tasks == ["TASK-004"]
    assert by_role["Backend Dev #1"].total_hours == 16
    assert team.available_hours == 180
    assert by_role["Tech Lead"].utilization_percentage == 4
    assert by_role["Backend Dev #1"].utilization_percentage == 9

    # no tester, security engineer or devops engineer on a team of three
    assert team.unassigned_tasks == ["TASK-008", "TASK-009", "TASK-003", "TASK-005", "TASK-006", "TASK-007"]
    assert warnings == []

    sprint1 = team.workload_chart[0]
    assert sprint1.sprint_number == 1
    assert sprint1.role_workload == {
        "Tech Lead": 8,
        "Backend Dev #1": 0,
        "Backend Dev #2": 0,
        UNASSIGNED: 31,
    }


def test_every_task_assigned_once():
    graph, _, team, _ = _team(load_project("basic-project.yaml"))
    owned = [tid for m in team.roles for tid in m.assigned_tasks] + team.unassigned_tasks
    assert sorted(owned) == sorted(graph.tasks_by_id)


def test_overallocation_is_flagged_not_corrected():
    # One feature without sub-features: design, review, integration + 2 infra tasks = 61h.
    project = ProjectInput(
        features=[Feature(id="F1", name="Tiny", priority="P1", sub_features=[], dependencies=[])],
        threats=[],
        config=PlanConfig(team_size=1, sprint_duration_weeks=1, project_start_date=date(2024, 1, 1)),
    )
    solo = [RosterEntry(name="Solo", skills=["architecture", "backend", "testing", "security", "devops"])]
    _, allocation, team, warnings = _team(project, roster=solo)

    assert len(allocation.sprints) == 2
    member = team.roles[0]
    assert member.total_hours == 61
    assert member.utilization_percentage == 102
    assert member.overallocated
    assert [w.code for w in warnings] == ["W_OVERALLOCATED"]
    assert team.unassigned_tasks == []


def test_role_file_overrides(tmp_path: Path):
    table = load_and_merge(example("roles.yaml"))
    assert table["testing"] == ["*testing"]
    assert table["backend"] == DEFAULT_ROLE_TABLE["backend"]
    assert load_and_merge(None) == DEFAULT_ROLE_TABLE

    bad = tmp_path / "bad.yaml"
    bad.write_text("testing: []\n", encoding="utf-8")
    with pytest.raises(RoleTableError):
        load_role_file(bad)
