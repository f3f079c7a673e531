from pathlib import Path

from planner_schedule.core.io.load_input import load_input
from planner_schedule.core.validate.validate_input import validate_input

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def example(name: str) -> str:
    return str(EXAMPLES / name)


def load_project(name: str):
    project, errors = validate_input(load_input(example(name)))
    assert errors == []
    assert project is not None
    return project
