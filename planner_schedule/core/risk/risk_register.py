from __future__ import annotations

from typing import Optional

from planner_schedule.core.model import (
    CriticalPathAnalysis,
    Feature,
    Impact,
    Likelihood,
    RiskCategory,
    RiskItem,
    RiskStatus,
    Threat,
)
from planner_schedule.utils.logging import get_logger

logger = get_logger(__name__)


PROBABILITY_LEVELS: dict[str, int] = {"low": 1, "medium": 2, "high": 3}
IMPACT_LEVELS: dict[str, int] = {"low": 1, "medium": 2, "high": 3, "critical": 3}

# Buffers shorter than this many working days raise a schedule risk.
MIN_SCHEDULE_BUFFER = 5


def risk_score(probability: str, impact: str) -> int:
    return PROBABILITY_LEVELS[probability] * IMPACT_LEVELS[impact]


def generate_risk_register(
    features: list[Feature],
    threats: list[Threat],
    analysis: CriticalPathAnalysis,
) -> list[RiskItem]:
    risks: list[RiskItem] = []

    def add(
        category: RiskCategory,
        description: str,
        probability: Likelihood,
        impact: Impact,
        mitigation: str,
        contingency: str,
        owner: str,
        status: RiskStatus,
        source_id: Optional[str] = None,
        threat_risk_score: Optional[float] = None,
    ) -> None:
        risks.append(
            RiskItem(
                id=f"RISK-{len(risks) + 1:03d}",
                category=category,
                description=description,
                probability=probability,
                impact=impact,
                score=risk_score(probability, impact),
                mitigation=mitigation,
                contingency=contingency,
                owner=owner,
                status=status,
                source_id=source_id,
                threat_risk_score=threat_risk_score,
            )
        )

    for feature in features:
        if feature.priority != "P0":
            continue
        add(
            "technical",
            f'Feature "{feature.name}" may have technical complexity issues',
            "medium",
            "high",
            "Conduct POC before full implementation, allocate extra buffer time",
            "Reduce feature scope to MVP if timeline at risk",
            "Tech Lead",
            "identified",
            source_id=feature.id,
        )

    for threat in threats:
        if threat.impact != "critical":
            continue
        description = f"Critical threat: {threat.name}"
        if threat.description:
            description += f" - {threat.description}"
        add(
            "security",
            description,
            threat.likelihood,
            threat.impact,
            "; ".join(threat.mitigation) or "Define security controls for this threat",
            "Implement compensating controls, escalate to CISO",
            "Security Engineer",
            "identified",
            source_id=threat.id,
            threat_risk_score=threat.risk_score,
        )

    add(
        "resource",
        "Key team member leaving during project",
        "low",
        "high",
        "Knowledge sharing sessions, documentation, pair programming",
        "Cross-train team members, maintain up-to-date documentation",
        "Tech Lead",
        "mitigating",
    )

    if analysis.buffer_days < MIN_SCHEDULE_BUFFER:
        add(
            "schedule",
            f"Critical path has minimal buffer ({analysis.buffer_days} days), high risk of delay",
            "high",
            "high",
            "Add buffer tasks, parallelize work where possible, reduce scope if needed",
            "Negotiate deadline extension, prioritize P0 features only",
            "Tech Lead",
            "mitigating",
        )

    add(
        "external",
        "Third-party API/service dependency failure",
        "medium",
        "medium",
        "Implement fallback mechanisms, cache responses, SLA monitoring",
        "Switch to alternative provider, implement offline mode",
        "Backend Dev",
        "mitigating",
    )

    logger.debug("risk register: %d items", len(risks))
    return risks
