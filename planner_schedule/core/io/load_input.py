from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from planner_schedule.core.errors import PlanLoadError

YAML_SUFFIXES = {".yaml", ".yml"}

# Sections that may be left empty in YAML (`features:` with nothing under it).
LIST_SECTIONS = ("features", "threats")


def load_input(path: str) -> dict[str, Any]:
    """Load a YAML/JSON project document.

    Returns a dict with keys: config, features, threats, __file__.
    Missing or empty list sections become []. A config section that is
    present but empty is rejected here; a missing one is left to the validator.
    """

    p = Path(path)
    data = _parse(p, _read_text(p))

    if "config" in data and data["config"] is None:
        raise PlanLoadError(
            code="E_EMPTY_SECTION",
            message="config section is present but empty",
            file=str(p),
            path="config",
        )

    normalized: dict[str, Any] = {"config": data.get("config")}
    for section in LIST_SECTIONS:
        value = data.get(section)
        normalized[section] = [] if value is None else value
    normalized["__file__"] = str(p)
    return normalized


def _read_text(p: Path) -> str:
    if not p.exists():
        raise PlanLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file=str(p))
    if p.suffix.lower() not in YAML_SUFFIXES | {".json"}:
        raise PlanLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message="supported formats are .yaml/.yml and .json",
            file=str(p),
        )
    try:
        return p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PlanLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e


def _parse(p: Path, text: str) -> dict[str, Any]:
    if p.suffix.lower() in YAML_SUFFIXES:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise PlanLoadError(code="E_YAML_PARSE", message=str(e), file=str(p)) from e
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PlanLoadError(code="E_JSON_PARSE", message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise PlanLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )
    return data
