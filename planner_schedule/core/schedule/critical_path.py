from __future__ import annotations

import heapq
from collections import defaultdict

from planner_schedule.core.errors import CycleError, GraphError
from planner_schedule.core.model import CriticalPathAnalysis, TaskGraph, TaskGroup, TaskTiming
from planner_schedule.utils.logging import get_logger

logger = get_logger(__name__)


BUFFER_RATIO_DIVISOR = 5  # buffer is 20% of the critical-path duration


def buffer_for_duration(total_duration: int) -> int:
    """ceil(0.2 * total_duration), in integer arithmetic."""
    return -(-total_duration // BUFFER_RATIO_DIVISOR)


def topological_order(graph: TaskGraph) -> list[str]:
    """Kahn's algorithm. Ready tasks are released in task id order.

    Raises CycleError if any task cannot be ordered.
    """

    in_degree: dict[str, int] = {tid: 0 for tid in graph.tasks_by_id}
    for tid, dep in graph.edges:
        if dep not in in_degree:
            raise GraphError(
                code="E_GRAPH_UNKNOWN_DEPENDENCY",
                message=f"{tid} depends on unknown task: {dep}",
                path=f"tasks.{tid}.dependencies",
            )
        in_degree[tid] += 1

    successors = graph.successors()
    ready = [tid for tid, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    order: list[str] = []

    while ready:
        tid = heapq.heappop(ready)
        order.append(tid)
        for nxt in successors[tid]:
            in_degree[nxt] -= 1
            if in_degree[nxt] == 0:
                heapq.heappush(ready, nxt)

    if len(order) != len(graph.tasks_by_id):
        stuck = sorted(tid for tid, degree in in_degree.items() if degree > 0)
        raise CycleError(
            code="E_CYCLE",
            message=f"dependency cycle: {len(stuck)} tasks cannot be ordered: {', '.join(stuck[:10])}",
            path="tasks",
        )
    return order


def analyze_critical_path(graph: TaskGraph) -> CriticalPathAnalysis:
    """Forward/backward CPM pass over durations in working days."""

    order = topological_order(graph)
    tasks = graph.tasks_by_id
    successors = graph.successors()
    duration = {tid: t.duration_days for tid, t in tasks.items()}

    earliest: dict[str, int] = {}
    for tid in order:
        earliest[tid] = max(
            (earliest[p] + duration[p] for p in tasks[tid].dependencies),
            default=0,
        )

    anchor = max(
        (earliest[tid] + duration[tid] for tid in order if not successors[tid]),
        default=0,
    )

    latest: dict[str, int] = {}
    for tid in reversed(order):
        if successors[tid]:
            latest[tid] = min(latest[s] for s in successors[tid]) - duration[tid]
        else:
            latest[tid] = anchor - duration[tid]

    timings = {
        tid: TaskTiming(
            task_id=tid,
            duration=duration[tid],
            earliest_start=earliest[tid],
            latest_start=latest[tid],
        )
        for tid in order
    }

    critical = _critical_chain(graph, timings, successors)
    groups = _parallel_groups(order, timings)

    logger.debug(
        "critical path: %d tasks, duration %d days, %d parallel groups",
        len(critical),
        anchor,
        len(groups),
    )
    return CriticalPathAnalysis(
        order=order,
        timings=timings,
        critical_tasks=critical,
        total_duration=anchor,
        buffer_days=buffer_for_duration(anchor),
        parallelizable_groups=groups,
    )


def _critical_chain(
    graph: TaskGraph,
    timings: dict[str, TaskTiming],
    successors: dict[str, list[str]],
) -> list[str]:
    def tie_key(tid: str) -> tuple[int, str]:
        return (-timings[tid].duration, tid)

    sources = [
        tid
        for tid, t in graph.tasks_by_id.items()
        if not t.dependencies and timings[tid].critical
    ]
    if not sources:
        return []

    current = min(sources, key=tie_key)
    chain = [current]
    while True:
        finish = timings[current].earliest_start + timings[current].duration
        candidates = [
            s
            for s in successors[current]
            if timings[s].critical and timings[s].earliest_start == finish
        ]
        if not candidates:
            return chain
        current = min(candidates, key=tie_key)
        chain.append(current)


def _parallel_groups(order: list[str], timings: dict[str, TaskTiming]) -> list[TaskGroup]:
    by_start: dict[int, list[str]] = defaultdict(list)
    for tid in order:
        by_start[timings[tid].earliest_start].append(tid)

    groups: list[TaskGroup] = []
    for start in sorted(by_start):
        members = sorted(by_start[start])
        if len(members) < 2:
            continue
        groups.append(
            TaskGroup(
                group_id=f"GROUP-{len(groups) + 1:03d}",
                earliest_start=start,
                tasks=members,
                estimated_duration=max(timings[tid].duration for tid in members),
            )
        )
    return groups
