from __future__ import annotations

from collections import defaultdict

from planner_schedule.core.errors import OverallocationWarning, PlanWarning
from planner_schedule.core.model import (
    RosterEntry,
    TaskGraph,
    TeamAllocation,
    TeamMember,
    WorkloadDistribution,
)
from planner_schedule.core.schedule.sprints import SprintAllocation, sprint_hours
from planner_schedule.core.team.role_table import UNASSIGNED, resolve_role_table
from planner_schedule.utils.logging import get_logger

logger = get_logger(__name__)


OVERALLOCATION_THRESHOLD = 80


def allocate_team(
    graph: TaskGraph,
    allocation: SprintAllocation,
    *,
    roster: list[RosterEntry],
    role_table: dict[str, list[str]],
    sprint_weeks: int,
) -> tuple[TeamAllocation, list[PlanWarning]]:
    """Assign every task to a roster member by category, round-robin within a category.

    Utilization is measured against the hours one member has over all sprints.
    Members above OVERALLOCATION_THRESHOLD percent are reported, never rebalanced.
    """

    resolved = resolve_role_table(roster, role_table)
    sprint_of = allocation.sprint_of
    ordered = sorted(graph.tasks_by_id.values(), key=lambda t: (sprint_of.get(t.id, 0), t.id))

    assigned: dict[str, list[str]] = {m.name: [] for m in roster}
    owner_of: dict[str, str] = {}
    turn: dict[str, int] = defaultdict(int)
    unassigned: list[str] = []

    for task in ordered:
        names = resolved.get(task.category, [])
        if not names:
            unassigned.append(task.id)
            owner_of[task.id] = UNASSIGNED
            continue
        name = names[turn[task.category] % len(names)]
        turn[task.category] += 1
        assigned[name].append(task.id)
        owner_of[task.id] = name

    available = len(allocation.sprints) * sprint_hours(sprint_weeks)
    members: list[TeamMember] = []
    warnings: list[PlanWarning] = []
    for entry in roster:
        total = sum(graph.tasks_by_id[tid].estimated_hours for tid in assigned[entry.name])
        member = TeamMember(
            role=entry.name,
            skills=list(entry.skills),
            assigned_tasks=assigned[entry.name],
            total_hours=total,
            utilization_percentage=_percent(total, available),
        )
        members.append(member)
        if member.utilization_percentage > OVERALLOCATION_THRESHOLD:
            warning = OverallocationWarning(
                code="W_OVERALLOCATED",
                message=(
                    f"{member.role} is at {member.utilization_percentage}% utilization "
                    f"({total}h of {available}h)"
                ),
                path=f"team_allocation.roles.{member.role}",
            )
            logger.warning(str(warning))
            warnings.append(warning)

    workload: list[WorkloadDistribution] = []
    for sprint in allocation.sprints:
        hours: dict[str, int] = {m.name: 0 for m in roster}
        for tid in sprint.tasks:
            owner = owner_of[tid]
            hours[owner] = hours.get(owner, 0) + graph.tasks_by_id[tid].estimated_hours
        workload.append(WorkloadDistribution(sprint_number=sprint.sprint_number, role_workload=hours))

    if unassigned:
        logger.info("%d tasks have no matching role: %s", len(unassigned), ", ".join(unassigned))

    return (
        TeamAllocation(
            roles=members,
            workload_chart=workload,
            unassigned_tasks=unassigned,
            available_hours=available,
        ),
        warnings,
    )


def _percent(part: int, whole: int) -> int:
    """Integer percentage, rounded half up; 0 when there is nothing to measure against."""
    if whole <= 0:
        return 0
    return (part * 200 + whole) // (whole * 2)
