from __future__ import annotations

import json
from typing import Any

import yaml

from planner_schedule.core.errors import PlanWarning
from planner_schedule.core.model import (
    CriticalPathAnalysis,
    ProjectPlan,
    RiskItem,
    SprintPlan,
    Task,
    TeamAllocation,
)


def plan_to_dict(plan: ProjectPlan) -> dict[str, Any]:
    """Plain-data view of a plan: only str/int/float/bool/None/list/dict, dates as ISO strings."""
    return {
        "tasks": [_task(t) for t in plan.tasks],
        "sprints": [_sprint(s) for s in plan.sprints],
        "team_allocation": _team(plan.team_allocation),
        "critical_path": _critical_path(plan.critical_path),
        "risk_register": [_risk(r) for r in plan.risk_register],
        "warnings": [_warning(w) for w in plan.warnings],
    }


def dump_plan_yaml(data: dict[str, Any], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False, allow_unicode=True)


def plan_to_yaml(data: dict[str, Any]) -> str:
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


def plan_to_json(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2, sort_keys=True)


def _task(t: Task) -> dict[str, Any]:
    return {
        "id": t.id,
        "title": t.title,
        "description": t.description,
        "type": t.type,
        "category": t.category,
        "estimated_hours": t.estimated_hours,
        "duration_days": t.duration_days,
        "story_points": t.story_points,
        "priority": t.priority,
        "dependencies": list(t.dependencies),
        "sprint": t.sprint,
        "status": t.status,
        "acceptance_criteria": list(t.acceptance_criteria),
        "related_feature": t.related_feature,
    }


def _sprint(s: SprintPlan) -> dict[str, Any]:
    return {
        "sprint_number": s.sprint_number,
        "start_date": s.start_date.isoformat(),
        "end_date": s.end_date.isoformat(),
        "goal": s.goal,
        "capacity": s.capacity,
        "story_points": s.story_points,
        "tasks": list(s.tasks),
        "milestones": [
            {
                "name": m.name,
                "description": m.description,
                "due_date": m.due_date.isoformat(),
                "deliverables": list(m.deliverables),
            }
            for m in s.milestones
        ],
    }


def _team(team: TeamAllocation) -> dict[str, Any]:
    return {
        "available_hours": team.available_hours,
        "roles": [
            {
                "role": m.role,
                "skills": list(m.skills),
                "assigned_tasks": list(m.assigned_tasks),
                "total_hours": m.total_hours,
                "utilization_percentage": m.utilization_percentage,
                "overallocated": m.overallocated,
            }
            for m in team.roles
        ],
        "workload_chart": [
            {"sprint_number": w.sprint_number, "role_workload": dict(w.role_workload)}
            for w in team.workload_chart
        ],
        "unassigned_tasks": list(team.unassigned_tasks),
    }


def _critical_path(cp: CriticalPathAnalysis) -> dict[str, Any]:
    return {
        "total_duration": cp.total_duration,
        "buffer_days": cp.buffer_days,
        "critical_tasks": list(cp.critical_tasks),
        "timings": [
            {
                "task_id": tid,
                "duration": timing.duration,
                "earliest_start": timing.earliest_start,
                "latest_start": timing.latest_start,
                "slack": timing.slack,
            }
            for tid, timing in cp.timings.items()
        ],
        "parallelizable_groups": [
            {
                "group_id": g.group_id,
                "earliest_start": g.earliest_start,
                "tasks": list(g.tasks),
                "estimated_duration": g.estimated_duration,
            }
            for g in cp.parallelizable_groups
        ],
    }


def _risk(r: RiskItem) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": r.id,
        "category": r.category,
        "description": r.description,
        "probability": r.probability,
        "impact": r.impact,
        "score": r.score,
        "mitigation": r.mitigation,
        "contingency": r.contingency,
        "owner": r.owner,
        "status": r.status,
    }
    if r.source_id is not None:
        out["source_id"] = r.source_id
    if r.threat_risk_score is not None:
        out["threat_risk_score"] = r.threat_risk_score
    return out


def _warning(w: PlanWarning) -> dict[str, Any]:
    return {"code": w.code, "message": w.message, "path": w.path}
