from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta

from planner_schedule.core.errors import InputError, OverCapacityWarning, PlanWarning
from planner_schedule.core.model import (
    HOURS_PER_DAY,
    CriticalPathAnalysis,
    Milestone,
    SprintPlan,
    Task,
    TaskGraph,
)
from planner_schedule.utils.logging import get_logger

logger = get_logger(__name__)


WORKDAYS_PER_WEEK = 5
# One story point is roughly three hours of work: 0.3 points per hour.
POINTS_PER_HOUR = (3, 10)


@dataclass(frozen=True)
class SprintAllocation:
    sprints: list[SprintPlan]
    sprint_of: dict[str, int]
    warnings: list[PlanWarning]


def sprint_hours(sprint_weeks: int) -> int:
    """Available hours for one person over one sprint."""
    return sprint_weeks * WORKDAYS_PER_WEEK * HOURS_PER_DAY


def sprint_velocity(team_size: int, sprint_weeks: int) -> int:
    num, den = POINTS_PER_HOUR
    return team_size * sprint_hours(sprint_weeks) * num // den


def sprint_dates(start: date, sprint_number: int, sprint_weeks: int) -> tuple[date, date]:
    first = start + timedelta(days=(sprint_number - 1) * sprint_weeks * 7)
    return first, first + timedelta(days=sprint_weeks * 7 - 1)


def allocate_sprints(
    graph: TaskGraph,
    analysis: CriticalPathAnalysis,
    *,
    team_size: int,
    sprint_weeks: int,
    start_date: date,
) -> SprintAllocation:
    """Greedy precedence-respecting packing of tasks into fixed-capacity sprints.

    Tasks are ranked by (priority, dependency count, slack, id). Pinned tasks
    go to their sprint first. Afterwards the current sprint takes the
    best-ranked task whose dependencies all sit in earlier sprints and whose
    points still fit; when nothing qualifies the sprint is closed. A task
    larger than a whole sprint is placed alone and reported with an
    OverCapacityWarning. This is a heuristic, not an optimal packing.
    """

    velocity = sprint_velocity(team_size, sprint_weeks)
    ranked = sorted(
        graph.tasks_by_id.values(),
        key=lambda t: (
            t.priority,
            len(t.dependencies),
            analysis.timings[t.id].slack,
            t.id,
        ),
    )

    sprint_of: dict[str, int] = {}
    members: dict[int, list[str]] = defaultdict(list)
    points: dict[int, int] = defaultdict(int)
    warnings: list[PlanWarning] = []

    def assign(task: Task, number: int) -> None:
        sprint_of[task.id] = number
        members[number].append(task.id)
        points[number] += task.story_points

    for task in ranked:
        if task.pinned_sprint is not None:
            assign(task, task.pinned_sprint)
    for number in sorted(members):
        if points[number] > velocity:
            warnings.append(
                OverCapacityWarning(
                    code="W_PINNED_OVER_CAPACITY",
                    message=f"pinned tasks need {points[number]} points, sprint velocity is {velocity}",
                    path=f"sprints[{number}]",
                )
            )

    pending = [t for t in ranked if t.id not in sprint_of]
    current = 1

    def ready(task: Task) -> bool:
        return all(sprint_of.get(dep, current) < current for dep in task.dependencies)

    while pending:
        chosen = None
        for task in pending:
            if ready(task) and points[current] + task.story_points <= velocity:
                chosen = task
                break

        if chosen is None:
            if members[current]:
                current += 1
                continue
            candidates = [t for t in pending if ready(t)]
            if not candidates:
                current += 1
                continue
            # Empty sprint and nothing fits: the task alone exceeds a full sprint.
            chosen = candidates[0]
            warning = OverCapacityWarning(
                code="W_TASK_OVER_CAPACITY",
                message=(
                    f"{chosen.id} needs {chosen.story_points} points, sprint velocity is "
                    f"{velocity}; placed alone in sprint {current}"
                ),
                path=f"tasks.{chosen.id}",
            )
            logger.warning(str(warning))
            warnings.append(warning)
            assign(chosen, current)
            pending.remove(chosen)
            current += 1
            continue

        assign(chosen, current)
        pending.remove(chosen)

    sprints: list[SprintPlan] = []
    for number in range(1, max(members, default=0) + 1):
        task_ids = members.get(number, [])
        try:
            first, last = sprint_dates(start_date, number, sprint_weeks)
        except OverflowError as e:
            raise InputError(
                code="E_INVALID_CONFIG",
                message=f"sprint {number} starting from {start_date.isoformat()} falls outside the calendar",
                path="config.project_start_date",
            ) from e
        sprints.append(
            SprintPlan(
                sprint_number=number,
                start_date=first,
                end_date=last,
                capacity=velocity,
                tasks=list(task_ids),
                story_points=points.get(number, 0),
                goal=f"Sprint {number} - Complete {len(task_ids)} tasks",
                milestones=[
                    Milestone(
                        name=f"Sprint {number} Review",
                        description="Demo completed features to stakeholders",
                        due_date=last,
                        deliverables=[f"{len(task_ids)} tasks completed", "Demo presentation"],
                    )
                ],
            )
        )

    logger.debug(
        "allocated %d tasks into %d sprints (velocity %d points)",
        len(sprint_of),
        len(sprints),
        velocity,
    )
    return SprintAllocation(sprints=sprints, sprint_of=sprint_of, warnings=warnings)
