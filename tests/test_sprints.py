from datetime import date

import pytest

from planner_schedule.core.errors import InputError, OverCapacityWarning
from planner_schedule.core.graph.build_graph import build_task_graph
from planner_schedule.core.model import Task, TaskGraph
from planner_schedule.core.schedule.critical_path import analyze_critical_path
from planner_schedule.core.schedule.sprints import allocate_sprints, sprint_dates, sprint_velocity

from helpers import load_project


def _allocate(project):
    graph = build_task_graph(project.features, project.threats)
    cp = analyze_critical_path(graph)
    cfg = project.config
    allocation = allocate_sprints(
        graph,
        cp,
        team_size=cfg.team_size,
        sprint_weeks=cfg.sprint_duration_weeks,
        start_date=cfg.project_start_date,
    )
    return graph, allocation


def _task(tid, points, deps=(), priority="P1", pinned=None):
    return Task(
        id=tid,
        title=tid,
        description="",
        type="development",
        category="backend",
        estimated_hours=points * 3,
        story_points=points,
        priority=priority,
        dependencies=list(deps),
        related_feature="F",
        pinned_sprint=pinned,
    )


def _graph(*tasks):
    return TaskGraph(
        tasks_by_id={t.id: t for t in tasks},
        edges=[(t.id, d) for t in tasks for d in t.dependencies],
    )


def test_velocity():
    assert sprint_velocity(3, 2) == 54
    assert sprint_velocity(1, 1) == 9


def test_sprint_dates():
    assert sprint_dates(date(2024, 1, 1), 1, 2) == (date(2024, 1, 1), date(2024, 1, 14))
    assert sprint_dates(date(2024, 1, 1), 3, 2) == (date(2024, 1, 29), date(2024, 2, 11))


def test_single_feature_scenario_sprints():
    _, allocation = _allocate(load_project("single-feature.yaml"))
    sprints = allocation.sprints
    assert sprints[0].start_date == date(2024, 1, 1)
    assert [s.tasks for s in sprints] == [
        ["TASK-008", "TASK-009", "TASK-001"],
        ["TASK-002", "TASK-004"],
        ["TASK-006", "TASK-003", "TASK-005", "TASK-007"],
    ]
    assert [s.story_points for s in sprints] == [10, 10, 10]
    assert all(s.capacity == 54 for s in sprints)
    assert sprints[2].milestones[0].name == "Sprint 3 Review"
    assert sprints[2].milestones[0].due_date == date(2024, 2, 11)
    assert allocation.warnings == []


def test_infra_tasks_land_in_first_sprint():
    graph, allocation = _allocate(load_project("basic-project.yaml"))
    for task in graph.tasks_by_id.values():
        if task.related_feature == "Infrastructure":
            assert allocation.sprint_of[task.id] == 1


def test_allocation_invariants():
    graph, allocation = _allocate(load_project("basic-project.yaml"))

    # every task exactly once
    placed = [tid for s in allocation.sprints for tid in s.tasks]
    assert sorted(placed) == sorted(graph.tasks_by_id)
    assert len(placed) == len(set(placed))

    for sprint in allocation.sprints:
        assert sprint.story_points == sum(graph.tasks_by_id[t].story_points for t in sprint.tasks)
        assert sprint.story_points <= sprint.capacity
        for tid in sprint.tasks:
            for dep in graph.tasks_by_id[tid].dependencies:
                assert allocation.sprint_of[dep] < sprint.sprint_number


def test_later_ready_task_fills_remaining_capacity():
    # B cannot join A's sprint, C can.
    g = _graph(_task("A", 3, priority="P0"), _task("B", 3, ["A"], priority="P0"), _task("C", 3))
    cp = analyze_critical_path(g)
    allocation = allocate_sprints(g, cp, team_size=1, sprint_weeks=1, start_date=date(2024, 1, 1))
    assert [s.tasks for s in allocation.sprints] == [["A", "C"], ["B"]]


def test_oversized_task_is_placed_alone_with_warning():
    g = _graph(_task("BIG", 13, priority="P0"), _task("A", 2), _task("B", 2, ["BIG"]))
    cp = analyze_critical_path(g)
    allocation = allocate_sprints(g, cp, team_size=1, sprint_weeks=1, start_date=date(2024, 1, 1))

    # A fills sprint 1 first; BIG then gets sprint 2 to itself.
    assert [s.tasks for s in allocation.sprints] == [["A"], ["BIG"], ["B"]]
    assert allocation.sprints[1].over_capacity
    assert not allocation.sprints[0].over_capacity
    assert len(allocation.warnings) == 1
    warning = allocation.warnings[0]
    assert isinstance(warning, OverCapacityWarning)
    assert warning.code == "W_TASK_OVER_CAPACITY"
    assert warning.path == "tasks.BIG"


def test_pinned_tasks_over_capacity_are_reported():
    g = _graph(_task("P1", 6, pinned=1), _task("P2", 6, pinned=1))
    cp = analyze_critical_path(g)
    allocation = allocate_sprints(g, cp, team_size=1, sprint_weeks=1, start_date=date(2024, 1, 1))
    assert [s.tasks for s in allocation.sprints] == [["P1", "P2"]]
    assert [w.code for w in allocation.warnings] == ["W_PINNED_OVER_CAPACITY"]


def test_dates_past_calendar_end_raise_input_error():
    g = _graph(_task("A", 3), _task("B", 3, ["A"]))
    cp = analyze_critical_path(g)
    with pytest.raises(InputError) as excinfo:
        allocate_sprints(g, cp, team_size=1, sprint_weeks=52, start_date=date(9999, 6, 1))
    assert excinfo.value.code == "E_INVALID_CONFIG"
    assert excinfo.value.path == "config.project_start_date"
