from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import Path
from typing import Optional

import yaml

from planner_schedule.core.model import RosterEntry


UNASSIGNED = "Unassigned"

# Task category -> skill-tag patterns, tried in order; first pattern with a match wins.
DEFAULT_ROLE_TABLE: dict[str, list[str]] = {
    "design": ["architecture", "design"],
    "backend": ["backend"],
    "testing": ["testing", "automation"],
    "security": ["security", "threat_modeling"],
    "devops": ["devops", "ci_cd"],
    "documentation": ["documentation", "design"],
}

DEFAULT_ROSTER: list[RosterEntry] = [
    RosterEntry(name="Tech Lead", skills=["architecture", "design", "code_review"]),
    RosterEntry(name="Backend Dev #1", skills=["backend", "api", "database"]),
    RosterEntry(name="Backend Dev #2", skills=["backend", "api", "database"]),
    RosterEntry(name="Security Engineer", skills=["security", "threat_modeling", "code_review"]),
    RosterEntry(name="QA Engineer", skills=["testing", "automation", "security_testing"]),
    RosterEntry(name="DevOps Engineer", skills=["devops", "ci_cd", "monitoring"]),
]


class RoleTableError(ValueError):
    pass


def default_roster(team_size: int) -> list[RosterEntry]:
    """First team_size default roles; larger teams add backend developers."""
    roster = list(DEFAULT_ROSTER[:team_size])
    for n in range(3, team_size - len(DEFAULT_ROSTER) + 3):
        roster.append(RosterEntry(name=f"Backend Dev #{n}", skills=["backend", "api", "database"]))
    return roster


def load_role_file(path: str | Path) -> dict[str, list[str]]:
    """Load role-table overrides from a YAML file.

    Format:
      <category>: ["skill-pattern", ...]

    Patterns are shell-style (`security*`) and matched case-insensitively.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except (OSError, UnicodeDecodeError) as e:
        raise RoleTableError(f"cannot read role file: {e}") from e
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RoleTableError(f"role file is not valid YAML: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise RoleTableError("role file must be a mapping of category -> list[str]")

    out: dict[str, list[str]] = {}
    for k, v in raw.items():
        if not isinstance(k, str) or not k.strip():
            raise RoleTableError("categories must be non-empty strings")
        if not isinstance(v, list) or not v:
            raise RoleTableError(f"category '{k}' must map to a non-empty list")
        patterns: list[str] = []
        for item in v:
            if not isinstance(item, str) or not item.strip():
                raise RoleTableError(f"category '{k}' patterns must be non-empty strings")
            patterns.append(item.strip().lower())
        out[k.strip()] = patterns
    return out


def merged_role_table(overrides: dict[str, list[str]] | None = None) -> dict[str, list[str]]:
    """Return DEFAULT_ROLE_TABLE merged with optional overrides.

    Overrides replace categories of the same name, and may add new ones.
    """
    merged = dict(DEFAULT_ROLE_TABLE)
    if overrides:
        for k, v in overrides.items():
            merged[k] = list(v)
    return merged


def load_and_merge(role_file: Optional[str]) -> dict[str, list[str]]:
    if not role_file:
        return merged_role_table()
    return merged_role_table(load_role_file(role_file))


def resolve_role_table(
    roster: list[RosterEntry], table: dict[str, list[str]]
) -> dict[str, list[str]]:
    """Resolve category -> roster member names, in roster order.

    Categories whose patterns match nobody resolve to an empty list; their
    tasks are reported as unassigned.
    """
    resolved: dict[str, list[str]] = {}
    for category, patterns in table.items():
        names: list[str] = []
        for pattern in patterns:
            names = [
                m.name
                for m in roster
                if any(fnmatchcase(skill.lower(), pattern.lower()) for skill in m.skills)
            ]
            if names:
                break
        resolved[category] = names
    return resolved
