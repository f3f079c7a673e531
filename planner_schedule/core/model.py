from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional

from planner_schedule.core.errors import PlanWarning


Priority = Literal["P0", "P1", "P2", "P3"]
TaskType = Literal["design", "development", "testing", "security", "documentation", "devops"]
TaskStatus = Literal["not_started", "in_progress", "blocked", "review", "done"]
Likelihood = Literal["low", "medium", "high"]
Impact = Literal["low", "medium", "high", "critical"]
RiskCategory = Literal["technical", "resource", "schedule", "external", "security"]
RiskStatus = Literal["identified", "mitigating", "resolved", "accepted"]

HOURS_PER_DAY = 6


@dataclass(frozen=True)
class SubFeature:
    id: str
    name: str


@dataclass(frozen=True)
class Feature:
    id: str
    name: str
    priority: Priority
    sub_features: list[SubFeature]
    dependencies: list[str]
    description: str = ""


@dataclass(frozen=True)
class Threat:
    id: str
    name: str
    category: str
    impact: Impact
    risk_score: float
    mitigation: list[str]
    likelihood: Likelihood = "medium"
    description: str = ""
    target_component: Optional[str] = None


@dataclass(frozen=True)
class RosterEntry:
    name: str
    skills: list[str]


@dataclass(frozen=True)
class PlanConfig:
    team_size: int
    sprint_duration_weeks: int
    project_start_date: date
    roster: Optional[list[RosterEntry]] = None


@dataclass(frozen=True)
class ProjectInput:
    features: list[Feature]
    threats: list[Threat]
    config: PlanConfig


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    description: str
    type: TaskType
    category: str
    estimated_hours: int
    story_points: int
    priority: Priority
    dependencies: list[str]
    related_feature: str
    acceptance_criteria: list[str] = field(default_factory=list)
    status: TaskStatus = "not_started"
    sprint: Optional[int] = None
    pinned_sprint: Optional[int] = None

    @property
    def duration_days(self) -> int:
        """Working days at HOURS_PER_DAY productive hours, never below one."""
        return max(1, math.ceil(self.estimated_hours / HOURS_PER_DAY))


@dataclass(frozen=True)
class TaskGraph:
    tasks_by_id: dict[str, Task]
    edges: list[tuple[str, str]]  # (task_id, depends_on_id)

    def successors(self) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {tid: [] for tid in self.tasks_by_id}
        for tid, dep in self.edges:
            out[dep].append(tid)
        return out


@dataclass(frozen=True)
class TaskTiming:
    task_id: str
    duration: int
    earliest_start: int
    latest_start: int

    @property
    def slack(self) -> int:
        return self.latest_start - self.earliest_start

    @property
    def critical(self) -> bool:
        return self.slack == 0


@dataclass(frozen=True)
class TaskGroup:
    group_id: str
    earliest_start: int
    tasks: list[str]
    estimated_duration: int


@dataclass(frozen=True)
class CriticalPathAnalysis:
    order: list[str]
    timings: dict[str, TaskTiming]
    critical_tasks: list[str]
    total_duration: int
    buffer_days: int
    parallelizable_groups: list[TaskGroup]


@dataclass(frozen=True)
class Milestone:
    name: str
    description: str
    due_date: date
    deliverables: list[str]


@dataclass(frozen=True)
class SprintPlan:
    sprint_number: int
    start_date: date
    end_date: date
    capacity: int
    tasks: list[str]
    story_points: int
    goal: str
    milestones: list[Milestone]

    @property
    def over_capacity(self) -> bool:
        return self.story_points > self.capacity


@dataclass(frozen=True)
class TeamMember:
    role: str
    skills: list[str]
    assigned_tasks: list[str]
    total_hours: int
    utilization_percentage: int

    @property
    def overallocated(self) -> bool:
        return self.utilization_percentage > 80


@dataclass(frozen=True)
class WorkloadDistribution:
    sprint_number: int
    role_workload: dict[str, int]  # role -> hours


@dataclass(frozen=True)
class TeamAllocation:
    roles: list[TeamMember]
    workload_chart: list[WorkloadDistribution]
    unassigned_tasks: list[str]
    available_hours: int


@dataclass(frozen=True)
class RiskItem:
    id: str
    category: RiskCategory
    description: str
    probability: Likelihood
    impact: Impact
    score: int
    mitigation: str
    contingency: str
    owner: str
    status: RiskStatus
    source_id: Optional[str] = None
    threat_risk_score: Optional[float] = None


@dataclass(frozen=True)
class ProjectPlan:
    tasks: list[Task]
    sprints: list[SprintPlan]
    team_allocation: TeamAllocation
    critical_path: CriticalPathAnalysis
    risk_register: list[RiskItem]
    warnings: list[PlanWarning] = field(default_factory=list)
