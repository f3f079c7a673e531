from __future__ import annotations

from collections import Counter
from datetime import date, datetime
from typing import Any, Iterable, Optional, cast

from planner_schedule.core.errors import InputError
from planner_schedule.core.model import (
    Feature,
    Impact,
    Likelihood,
    PlanConfig,
    Priority,
    ProjectInput,
    RosterEntry,
    SubFeature,
    Threat,
)


ALLOWED_PRIORITIES: set[str] = {"P0", "P1", "P2", "P3"}
ALLOWED_LIKELIHOODS: set[str] = {"low", "medium", "high"}
ALLOWED_IMPACTS: set[str] = {"low", "medium", "high", "critical"}

# Graph passes are linear but sprint packing rescans the ready set per placement.
MAX_TASKS = 2000

# Default rosters and workload rows grow with team size.
MAX_TEAM_SIZE = 500
MAX_SPRINT_WEEKS = 52

CRITICAL_RISK_SCORE = 8.0


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _is_list_of_str(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and bool(v.strip())


def needs_mitigation_task(impact: str, risk_score: float) -> bool:
    return impact == "critical" or risk_score >= CRITICAL_RISK_SCORE


def validate_input(raw: dict[str, Any]) -> tuple[Optional[ProjectInput], list[InputError]]:
    """Validate a project document.

    Returns (project_input, errors). project_input is None when errors exist.
    Every problem found is reported, not just the first.
    """

    file = cast(Optional[str], raw.get("__file__"))
    errors: list[InputError] = []

    config = _validate_config(raw.get("config"), file, errors)
    features = _validate_features(raw.get("features"), file, errors)
    threats = _validate_threats(raw.get("threats"), file, errors)

    expected = expected_task_count(features, threats)
    if expected > MAX_TASKS:
        errors.append(
            InputError(
                code="E_TOO_MANY_TASKS",
                message=f"input would produce {expected} tasks (limit {MAX_TASKS})",
                file=file,
                path="features",
            )
        )

    if config is not None and not _calendar_fits(config, expected):
        errors.append(
            InputError(
                code="E_INVALID_CONFIG",
                message=(
                    f"a schedule of up to {expected} sprints of {config.sprint_duration_weeks} weeks "
                    f"starting {config.project_start_date.isoformat()} runs past {date.max.isoformat()}"
                ),
                file=file,
                path="config.project_start_date",
            )
        )

    if errors or config is None:
        return None, _sorted(errors)

    return ProjectInput(features=features, threats=threats, config=config), []


def expected_task_count(features: list[Feature], threats: list[Threat]) -> int:
    count = 2  # CI/CD + monitoring
    for f in features:
        count += 3 + 2 * len(f.sub_features)
    count += sum(1 for t in threats if needs_mitigation_task(t.impact, t.risk_score))
    return count


def _calendar_fits(config: PlanConfig, task_count: int) -> bool:
    """Every sprint holds at least one task, so task_count sprints is the longest possible schedule."""
    horizon = task_count * config.sprint_duration_weeks * 7
    return (date.max - config.project_start_date).days >= horizon


def _validate_config(
    raw: Any, file: Optional[str], errors: list[InputError]
) -> Optional[PlanConfig]:
    if not isinstance(raw, dict):
        errors.append(
            InputError(
                code="E_REQUIRED_FIELD",
                message="config is required and must be an object",
                file=file,
                path="config",
            )
        )
        return None

    start = len(errors)

    team_size = raw.get("team_size")
    if not _is_int(team_size) or not 0 < team_size <= MAX_TEAM_SIZE:
        errors.append(
            InputError(
                code="E_INVALID_CONFIG",
                message=f"team_size must be an integer between 1 and {MAX_TEAM_SIZE}",
                file=file,
                path="config.team_size",
            )
        )

    weeks = raw.get("sprint_duration_weeks")
    if not _is_int(weeks) or not 0 < weeks <= MAX_SPRINT_WEEKS:
        errors.append(
            InputError(
                code="E_INVALID_CONFIG",
                message=f"sprint_duration_weeks must be an integer between 1 and {MAX_SPRINT_WEEKS}",
                file=file,
                path="config.sprint_duration_weeks",
            )
        )

    start_date = _parse_date(raw.get("project_start_date"))
    if start_date is None:
        errors.append(
            InputError(
                code="E_INVALID_CONFIG",
                message="project_start_date must be an ISO-8601 date (YYYY-MM-DD)",
                file=file,
                path="config.project_start_date",
            )
        )

    roster = _validate_roster(raw.get("roster"), file, errors)

    if len(errors) > start:
        return None
    return PlanConfig(
        team_size=cast(int, team_size),
        sprint_duration_weeks=cast(int, weeks),
        project_start_date=cast(date, start_date),
        roster=roster,
    )


def _parse_date(v: Any) -> Optional[date]:
    # YAML loads unquoted dates as date/datetime objects.
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, str):
        try:
            return date.fromisoformat(v.strip())
        except ValueError:
            return None
    return None


def _validate_roster(
    raw: Any, file: Optional[str], errors: list[InputError]
) -> Optional[list[RosterEntry]]:
    if raw is None:
        return None
    if not isinstance(raw, list) or not raw:
        errors.append(
            InputError(
                code="E_INVALID_TYPE",
                message="roster must be a non-empty array",
                file=file,
                path="config.roster",
            )
        )
        return None
    if len(raw) > MAX_TEAM_SIZE:
        errors.append(
            InputError(
                code="E_INVALID_CONFIG",
                message=f"roster has {len(raw)} members (limit {MAX_TEAM_SIZE})",
                file=file,
                path="config.roster",
            )
        )
        return None

    out: list[RosterEntry] = []
    seen: set[str] = set()
    for i, entry in enumerate(raw):
        path = f"config.roster[{i}]"
        if not isinstance(entry, dict):
            errors.append(
                InputError(code="E_INVALID_TYPE", message="roster entry must be an object", file=file, path=path)
            )
            continue
        name = entry.get("name")
        if not _is_non_empty_str(name):
            errors.append(
                InputError(
                    code="E_REQUIRED_FIELD",
                    message="name is required and must be a non-empty string",
                    file=file,
                    path=f"{path}.name",
                )
            )
            continue
        name = cast(str, name).strip()
        if name in seen:
            errors.append(
                InputError(
                    code="E_DUPLICATE_ID",
                    message=f"duplicate roster name: {name}",
                    file=file,
                    path=f"{path}.name",
                )
            )
            continue
        skills = entry.get("skills", [])
        if not _is_list_of_str(skills):
            errors.append(
                InputError(
                    code="E_INVALID_TYPE",
                    message="skills must be an array of strings",
                    file=file,
                    path=f"{path}.skills",
                )
            )
            continue
        seen.add(name)
        out.append(RosterEntry(name=name, skills=[s.strip().lower() for s in skills if s.strip()]))
    return out


def _validate_features(raw: Any, file: Optional[str], errors: list[InputError]) -> list[Feature]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        errors.append(
            InputError(
                code="E_INVALID_TYPE",
                message="features must be an array",
                file=file,
                path="features",
            )
        )
        return []

    features: list[Feature] = []
    index_by_id: dict[str, int] = {}

    for i, item in enumerate(raw):
        path = f"features[{i}]"
        if not isinstance(item, dict):
            errors.append(
                InputError(code="E_INVALID_TYPE", message="feature must be an object", file=file, path=path)
            )
            continue

        fid = item.get("id")
        if not _is_non_empty_str(fid):
            errors.append(
                InputError(
                    code="E_REQUIRED_FIELD",
                    message="id is required and must be a non-empty string",
                    file=file,
                    path=f"{path}.id",
                )
            )
            continue
        fid = cast(str, fid)

        if fid in index_by_id:
            errors.append(
                InputError(
                    code="E_DUPLICATE_ID",
                    message=f"duplicate feature id: {fid}",
                    file=file,
                    path=f"{path}.id",
                )
            )
            continue

        name = item.get("name")
        if not _is_non_empty_str(name):
            errors.append(
                InputError(
                    code="E_REQUIRED_FIELD",
                    message="name is required and must be a non-empty string",
                    file=file,
                    path=f"{path}.name",
                )
            )
            continue

        priority = item.get("priority")
        if not isinstance(priority, str) or priority not in ALLOWED_PRIORITIES:
            errors.append(
                InputError(
                    code="E_INVALID_ENUM",
                    message=f"priority must be one of {sorted(ALLOWED_PRIORITIES)}",
                    file=file,
                    path=f"{path}.priority",
                )
            )
            continue

        subs = _validate_sub_features(fid, item.get("sub_features", []), path, file, errors)
        if subs is None:
            continue

        deps = item.get("dependencies", [])
        if deps is None:
            deps = []
        if not _is_list_of_str(deps):
            errors.append(
                InputError(
                    code="E_INVALID_TYPE",
                    message="dependencies must be an array of strings",
                    file=file,
                    path=f"{path}.dependencies",
                )
            )
            continue

        description = item.get("description", "")
        if not isinstance(description, str):
            description = ""

        index_by_id[fid] = i
        features.append(
            Feature(
                id=fid,
                name=cast(str, name).strip(),
                priority=cast(Priority, priority),
                sub_features=subs,
                dependencies=list(dict.fromkeys(cast(list[str], deps))),
                description=description,
            )
        )

    # Referential integrity checks.
    for f in features:
        for di, dep in enumerate(f.dependencies):
            if dep not in index_by_id:
                errors.append(
                    InputError(
                        code="E_UNKNOWN_DEPENDENCY",
                        message=f"dependencies references unknown feature id: {dep}",
                        file=file,
                        path=f"features[{index_by_id[f.id]}].dependencies[{di}]",
                    )
                )

    return features


def _validate_sub_features(
    fid: str, raw: Any, path: str, file: Optional[str], errors: list[InputError]
) -> Optional[list[SubFeature]]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        errors.append(
            InputError(
                code="E_INVALID_TYPE",
                message="sub_features must be an array",
                file=file,
                path=f"{path}.sub_features",
            )
        )
        return None

    out: list[SubFeature] = []
    for si, sub in enumerate(raw):
        sub_path = f"{path}.sub_features[{si}]"
        default_id = f"{fid}.{si + 1}"
        # Plain strings are accepted as sub-feature names.
        if _is_non_empty_str(sub):
            out.append(SubFeature(id=default_id, name=cast(str, sub).strip()))
            continue
        if isinstance(sub, dict) and _is_non_empty_str(sub.get("name")):
            sid = sub.get("id")
            out.append(
                SubFeature(
                    id=sid if _is_non_empty_str(sid) else default_id,
                    name=sub["name"].strip(),
                )
            )
            continue
        errors.append(
            InputError(
                code="E_INVALID_TYPE",
                message="sub feature must be a non-empty string or an object with a name",
                file=file,
                path=sub_path,
            )
        )
        return None
    return out


def _validate_threats(raw: Any, file: Optional[str], errors: list[InputError]) -> list[Threat]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        errors.append(
            InputError(
                code="E_INVALID_TYPE",
                message="threats must be an array",
                file=file,
                path="threats",
            )
        )
        return []

    threats: list[Threat] = []
    seen: set[str] = set()

    for i, item in enumerate(raw):
        path = f"threats[{i}]"
        if not isinstance(item, dict):
            errors.append(
                InputError(code="E_INVALID_TYPE", message="threat must be an object", file=file, path=path)
            )
            continue

        tid = item.get("id")
        if not _is_non_empty_str(tid):
            errors.append(
                InputError(
                    code="E_REQUIRED_FIELD",
                    message="id is required and must be a non-empty string",
                    file=file,
                    path=f"{path}.id",
                )
            )
            continue
        tid = cast(str, tid)
        if tid in seen:
            errors.append(
                InputError(
                    code="E_DUPLICATE_ID",
                    message=f"duplicate threat id: {tid}",
                    file=file,
                    path=f"{path}.id",
                )
            )
            continue

        name = item.get("name")
        if not _is_non_empty_str(name):
            errors.append(
                InputError(
                    code="E_REQUIRED_FIELD",
                    message="name is required and must be a non-empty string",
                    file=file,
                    path=f"{path}.name",
                )
            )
            continue

        impact = item.get("impact")
        if not isinstance(impact, str) or impact not in ALLOWED_IMPACTS:
            errors.append(
                InputError(
                    code="E_INVALID_ENUM",
                    message=f"impact must be one of {sorted(ALLOWED_IMPACTS)}",
                    file=file,
                    path=f"{path}.impact",
                )
            )
            continue

        likelihood = item.get("likelihood", "medium")
        if not isinstance(likelihood, str) or likelihood not in ALLOWED_LIKELIHOODS:
            errors.append(
                InputError(
                    code="E_INVALID_ENUM",
                    message=f"likelihood must be one of {sorted(ALLOWED_LIKELIHOODS)}",
                    file=file,
                    path=f"{path}.likelihood",
                )
            )
            continue

        risk_score = item.get("risk_score")
        if not _is_number(risk_score) or not 0 <= risk_score <= 10:
            errors.append(
                InputError(
                    code="E_INVALID_VALUE",
                    message="risk_score must be a number between 0 and 10",
                    file=file,
                    path=f"{path}.risk_score",
                )
            )
            continue

        mitigation = item.get("mitigation", [])
        if not _is_list_of_str(mitigation):
            errors.append(
                InputError(
                    code="E_INVALID_TYPE",
                    message="mitigation must be an array of strings",
                    file=file,
                    path=f"{path}.mitigation",
                )
            )
            continue

        category = item.get("category", "")
        description = item.get("description", "")
        target = item.get("target_component")

        seen.add(tid)
        threats.append(
            Threat(
                id=tid,
                name=cast(str, name).strip(),
                category=category if isinstance(category, str) else "",
                impact=cast(Impact, impact),
                risk_score=float(risk_score),
                mitigation=list(mitigation),
                likelihood=cast(Likelihood, likelihood),
                description=description if isinstance(description, str) else "",
                target_component=target if _is_non_empty_str(target) else None,
            )
        )

    return threats


def summarize_input(project: ProjectInput) -> str:
    counts = Counter([f.priority for f in project.features])
    parts = [f"{p}={counts.get(p, 0)}" for p in sorted(ALLOWED_PRIORITIES)]
    cfg = project.config
    return (
        f"OK: {len(project.features)} features ("
        + ", ".join(parts)
        + f"), {len(project.threats)} threats"
        + f"\nTeam: {cfg.team_size}, sprint: {cfg.sprint_duration_weeks}w, start: {cfg.project_start_date.isoformat()}"
        + f"\nTasks: {expected_task_count(project.features, project.threats)}"
    )


def _sorted(errors: Iterable[InputError]) -> list[InputError]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
