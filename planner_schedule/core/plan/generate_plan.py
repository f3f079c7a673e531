from __future__ import annotations

import dataclasses
from typing import Any, Optional, cast

from planner_schedule.core.errors import PlanError
from planner_schedule.core.graph.build_graph import build_task_graph
from planner_schedule.core.model import ProjectInput, ProjectPlan
from planner_schedule.core.risk.risk_register import generate_risk_register
from planner_schedule.core.schedule.critical_path import analyze_critical_path
from planner_schedule.core.schedule.sprints import allocate_sprints
from planner_schedule.core.team.allocate_team import allocate_team
from planner_schedule.core.team.role_table import default_roster, merged_role_table
from planner_schedule.core.validate.validate_input import validate_input
from planner_schedule.utils.logging import get_logger

logger = get_logger(__name__)


def plan_project(
    project: ProjectInput, role_table: Optional[dict[str, list[str]]] = None
) -> ProjectPlan:
    """Run builder -> CPM -> sprint packing -> team allocation -> risk register.

    Raises PlanError (GraphError/CycleError) when the task graph is unusable.
    """

    cfg = project.config
    graph = build_task_graph(project.features, project.threats)
    analysis = analyze_critical_path(graph)
    allocation = allocate_sprints(
        graph,
        analysis,
        team_size=cfg.team_size,
        sprint_weeks=cfg.sprint_duration_weeks,
        start_date=cfg.project_start_date,
    )
    team, team_warnings = allocate_team(
        graph,
        allocation,
        roster=cfg.roster or default_roster(cfg.team_size),
        role_table=role_table if role_table is not None else merged_role_table(),
        sprint_weeks=cfg.sprint_duration_weeks,
    )
    risks = generate_risk_register(project.features, project.threats, analysis)

    tasks = [
        dataclasses.replace(t, sprint=allocation.sprint_of[t.id])
        for t in graph.tasks_by_id.values()
    ]
    logger.info(
        "planned %d tasks over %d sprints, critical path %d days",
        len(tasks),
        len(allocation.sprints),
        analysis.total_duration,
    )
    return ProjectPlan(
        tasks=tasks,
        sprints=allocation.sprints,
        team_allocation=team,
        critical_path=analysis,
        risk_register=risks,
        warnings=allocation.warnings + team_warnings,
    )


def generate_project_plan(
    raw: dict[str, Any], role_table: Optional[dict[str, list[str]]] = None
) -> tuple[Optional[ProjectPlan], list[PlanError]]:
    """Validate a raw project document and plan it.

    Returns (plan, errors). Plan is None when errors exist; errors are never raised.
    """

    project, input_errors = validate_input(raw)
    if input_errors or project is None:
        return None, list(input_errors)

    try:
        plan = plan_project(project, role_table)
    except PlanError as e:
        file = cast(Optional[str], raw.get("__file__"))
        if file and not e.file:
            e = dataclasses.replace(e, file=file)
        logger.error("planning failed: %s", e)
        return None, [e]
    return plan, []
