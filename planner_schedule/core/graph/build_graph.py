from __future__ import annotations

from typing import Any, Optional

from planner_schedule.core.errors import CycleError, GraphError
from planner_schedule.core.graph.cycles import detect_cycles
from planner_schedule.core.model import Feature, Priority, Task, TaskGraph, Threat
from planner_schedule.core.validate.validate_input import needs_mitigation_task
from planner_schedule.utils.logging import get_logger

logger = get_logger(__name__)


# Base effort per task kind, before priority/coordination adjustments.
BASE_HOURS: dict[str, int] = {
    "design": 8,
    "implementation": 16,
    "unit_test": 6,
    "security_review": 8,
    "integration_test": 12,
    "mitigation": 12,
    "ci_cd": 16,
    "monitoring": 12,
}

PRIORITY_MULTIPLIERS: dict[str, float] = {"P0": 1.2, "P2": 0.8}
COORDINATION_MULTIPLIER = 1.2
COORDINATION_THRESHOLD = 2

STORY_POINT_THRESHOLDS: list[tuple[int, int]] = [(4, 1), (8, 2), (12, 3), (20, 5), (40, 8)]


def story_points_for_hours(hours: float) -> int:
    for limit, points in STORY_POINT_THRESHOLDS:
        if hours <= limit:
            return points
    return 13


def adjusted_hours(base_hours: float, priority: str, dependency_count: int) -> int:
    """Apply the priority and coordination multipliers, rounding half up."""
    hours = base_hours * PRIORITY_MULTIPLIERS.get(priority, 1.0)
    if dependency_count > COORDINATION_THRESHOLD:
        hours *= COORDINATION_MULTIPLIER
    return int(hours + 0.5)


def build_task_graph(features: list[Feature], threats: list[Threat]) -> TaskGraph:
    """Decompose features and threats into an estimated task graph.

    Per feature: design -> implementation -> unit test chains (one per
    sub-feature), then a P0 security review and an integration test that both
    wait on every implementation task. A feature listing other features in
    `dependencies` has its implementation tasks wait on their integration tests.

    Raises CycleError when caller-supplied feature dependencies close a loop.
    """

    drafts: list[dict[str, Any]] = []
    implementation_ids: dict[str, list[str]] = {}
    integration_id: dict[str, str] = {}

    def add(kind: str, **fields: Any) -> str:
        tid = f"TASK-{len(drafts) + 1:03d}"
        drafts.append({"id": tid, "kind": kind, **fields})
        return tid

    for feature in features:
        design_id = add(
            "design",
            title=f"Design architecture for {feature.name}",
            description=f"Create high-level design, data models, API contracts for {feature.name}",
            type="design",
            category="design",
            priority=feature.priority,
            dependencies=[],
            related_feature=feature.id,
            acceptance_criteria=[
                "Architecture diagram approved",
                "Data model documented",
                "API contracts defined",
            ],
        )

        impl_ids: list[str] = []
        for sub in feature.sub_features:
            impl_id = add(
                "implementation",
                title=f"Implement {sub.name} - Backend",
                description=f"Develop backend logic, database operations, business rules for {sub.name}",
                type="development",
                category="backend",
                priority=feature.priority,
                dependencies=[design_id],
                related_feature=feature.id,
                acceptance_criteria=[
                    "Business logic implemented",
                    "Database queries optimized",
                    "Unit tests pass (>80% coverage)",
                    "Code review approved",
                ],
            )
            impl_ids.append(impl_id)
            add(
                "unit_test",
                title=f"Unit tests for {sub.name}",
                description="Write comprehensive unit tests with edge cases",
                type="testing",
                category="testing",
                priority=feature.priority,
                dependencies=[impl_id],
                related_feature=feature.id,
                acceptance_criteria=[
                    "Code coverage >80%",
                    "Edge cases tested",
                    "Mocking/stubbing implemented",
                ],
            )

        add(
            "security_review",
            title=f"Security review for {feature.name}",
            description="Code review focusing on security vulnerabilities, OWASP Top 10 compliance",
            type="security",
            category="security",
            priority="P0",
            dependencies=list(impl_ids),
            related_feature=feature.id,
            acceptance_criteria=[
                "No critical vulnerabilities",
                "Input validation verified",
                "Authentication/authorization checked",
                "Secrets management verified",
            ],
        )
        integration_id[feature.id] = add(
            "integration_test",
            title=f"Integration tests for {feature.name}",
            description="End-to-end testing with database, API, and external dependencies",
            type="testing",
            category="testing",
            priority=feature.priority,
            dependencies=list(impl_ids),
            related_feature=feature.id,
            acceptance_criteria=[
                "All user flows tested",
                "Database transactions verified",
                "API error handling tested",
                "Performance benchmarks met",
            ],
        )
        implementation_ids[feature.id] = impl_ids

    for threat in threats:
        if not needs_mitigation_task(threat.impact, threat.risk_score):
            continue
        add(
            "mitigation",
            title=f"Mitigate threat: {threat.name}",
            description=f"Implement security controls to address {threat.category or 'security'} threat",
            type="security",
            category="security",
            priority="P0",
            dependencies=[],
            related_feature=threat.target_component or threat.id,
            acceptance_criteria=list(threat.mitigation),
        )

    add(
        "ci_cd",
        title="Setup CI/CD pipeline",
        description="Configure CI with SAST, DAST, dependency scanning",
        type="devops",
        category="devops",
        priority="P0",
        dependencies=[],
        related_feature="Infrastructure",
        acceptance_criteria=[
            "CI pipeline runs on every PR",
            "SAST scan integrated",
            "Deployment pipeline to staging",
            "Rollback mechanism tested",
        ],
        pinned_sprint=1,
    )
    add(
        "monitoring",
        title="Setup monitoring & logging",
        description="Configure APM, log aggregation, alerting",
        type="devops",
        category="devops",
        priority="P1",
        dependencies=[],
        related_feature="Infrastructure",
        acceptance_criteria=[
            "APM dashboard configured",
            "Log aggregation working",
            "Alerts for critical errors",
            "Performance metrics tracked",
        ],
        pinned_sprint=1,
    )

    # Cross-feature precedence: implementation waits on upstream integration tests.
    drafts_by_id = {d["id"]: d for d in drafts}
    for feature in features:
        upstream = [integration_id[dep] for dep in feature.dependencies if dep in integration_id]
        for impl_id in implementation_ids[feature.id]:
            deps = drafts_by_id[impl_id]["dependencies"]
            deps.extend(u for u in upstream if u not in deps)

    tasks_by_id: dict[str, Task] = {}
    for d in drafts:
        tasks_by_id[d["id"]] = _estimate(d)

    graph = TaskGraph(
        tasks_by_id=tasks_by_id,
        edges=[(t.id, dep) for t in tasks_by_id.values() for dep in t.dependencies],
    )
    check_graph(graph)
    logger.debug(
        "built task graph: %d tasks, %d edges from %d features and %d threats",
        len(graph.tasks_by_id),
        len(graph.edges),
        len(features),
        len(threats),
    )
    return graph


def check_graph(graph: TaskGraph, file: Optional[str] = None) -> None:
    """Raise GraphError if an edge leaves the task set, CycleError if the graph loops."""
    for tid, dep in graph.edges:
        if dep not in graph.tasks_by_id:
            raise GraphError(
                code="E_GRAPH_UNKNOWN_DEPENDENCY",
                message=f"{tid} depends on unknown task: {dep}",
                file=file,
                path=f"tasks.{tid}.dependencies",
            )

    cycles = detect_cycles({tid: list(t.dependencies) for tid, t in graph.tasks_by_id.items()})
    if cycles:
        tid, msg = cycles[0]
        raise CycleError(
            code="E_GRAPH_CYCLE",
            message=msg,
            file=file,
            path=f"tasks.{tid}.dependencies",
        )


def _estimate(draft: dict[str, Any]) -> Task:
    priority: Priority = draft["priority"]
    deps: list[str] = draft["dependencies"]
    hours = adjusted_hours(BASE_HOURS[draft["kind"]], priority, len(deps))
    return Task(
        id=draft["id"],
        title=draft["title"],
        description=draft["description"],
        type=draft["type"],
        category=draft["category"],
        estimated_hours=hours,
        story_points=story_points_for_hours(hours),
        priority=priority,
        dependencies=list(deps),
        related_feature=draft["related_feature"],
        acceptance_criteria=draft["acceptance_criteria"],
        pinned_sprint=draft.get("pinned_sprint"),
    )
