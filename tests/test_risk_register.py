from planner_schedule.core.graph.build_graph import build_task_graph
from planner_schedule.core.model import CriticalPathAnalysis
from planner_schedule.core.risk.risk_register import generate_risk_register, risk_score
from planner_schedule.core.schedule.critical_path import analyze_critical_path

from helpers import load_project


def _analysis(buffer_days):
    return CriticalPathAnalysis(
        order=[],
        timings={},
        critical_tasks=[],
        total_duration=buffer_days * 5,
        buffer_days=buffer_days,
        parallelizable_groups=[],
    )


def test_risk_score_levels():
    assert risk_score("low", "low") == 1
    assert risk_score("medium", "high") == 6
    assert risk_score("high", "critical") == 9


def test_register_for_basic_project():
    project = load_project("basic-project.yaml")
    cp = analyze_critical_path(build_task_graph(project.features, project.threats))
    risks = generate_risk_register(project.features, project.threats, cp)

    assert [r.id for r in risks] == [f"RISK-{i:03d}" for i in range(1, len(risks) + 1)]
    categories = [r.category for r in risks]
    # one P0 feature, one critical threat
    assert categories.count("technical") == 1
    assert categories.count("security") == 1
    assert categories.count("resource") == 1
    assert categories.count("external") == 1

    security = next(r for r in risks if r.category == "security")
    assert security.source_id == "THR-001"
    assert security.threat_risk_score == 9.0
    assert security.probability == "high"
    assert security.score == 9
    assert security.mitigation == "Rate-limit login attempts; Enforce MFA for privileged accounts"
    assert security.owner == "Security Engineer"

    for r in risks:
        assert 1 <= r.score <= 9


def test_schedule_risk_only_when_buffer_is_short():
    project = load_project("single-feature.yaml")
    short = generate_risk_register(project.features, project.threats, _analysis(4))
    enough = generate_risk_register(project.features, project.threats, _analysis(5))
    assert "schedule" in [r.category for r in short]
    assert "schedule" not in [r.category for r in enough]
    assert [r.category for r in enough] == ["resource", "external"]
