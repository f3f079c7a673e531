from planner_schedule.core.errors import PlanLoadError
from planner_schedule.core.io.load_input import load_input

from helpers import example


def test_load_yaml_success():
    raw = load_input(example("basic-project.yaml"))
    assert raw["config"]["team_size"] == 4
    assert isinstance(raw["features"], list)
    assert isinstance(raw["threats"], list)
    assert raw["__file__"].endswith("basic-project.yaml")


def test_load_json_success():
    raw = load_input(example("basic-project.json"))
    assert raw["config"]["project_start_date"] == "2024-01-01"
    assert len(raw["features"]) == 1


def test_load_missing_lists_default_to_empty(tmp_path):
    p = tmp_path / "project.yaml"
    p.write_text("config: {team_size: 1}\n", encoding="utf-8")
    raw = load_input(str(p))
    assert raw["features"] == []
    assert raw["threats"] == []


def test_load_missing_file():
    try:
        load_input(example("does-not-exist.yaml"))
        assert False, "expected PlanLoadError"
    except PlanLoadError as e:
        assert e.code == "E_FILE_NOT_FOUND"


def test_load_unsupported_format(tmp_path):
    p = tmp_path / "project.txt"
    p.write_text("hello", encoding="utf-8")
    try:
        load_input(str(p))
        assert False, "expected PlanLoadError"
    except PlanLoadError as e:
        assert e.code == "E_UNSUPPORTED_FORMAT"


def test_load_bad_yaml(tmp_path):
    p = tmp_path / "project.yaml"
    p.write_text("config: [unclosed\n", encoding="utf-8")
    try:
        load_input(str(p))
        assert False, "expected PlanLoadError"
    except PlanLoadError as e:
        assert e.code == "E_YAML_PARSE"


def test_load_top_level_must_be_mapping(tmp_path):
    p = tmp_path / "project.json"
    p.write_text("[1, 2, 3]", encoding="utf-8")
    try:
        load_input(str(p))
        assert False, "expected PlanLoadError"
    except PlanLoadError as e:
        assert e.code == "E_INVALID_TOP_LEVEL"


def test_load_empty_list_sections_become_empty(tmp_path):
    p = tmp_path / "project.yaml"
    p.write_text("config: {team_size: 1}\nfeatures:\nthreats:\n", encoding="utf-8")
    raw = load_input(str(p))
    assert raw["features"] == []
    assert raw["threats"] == []


def test_load_rejects_empty_config_section(tmp_path):
    p = tmp_path / "project.yaml"
    p.write_text("config:\nfeatures: []\n", encoding="utf-8")
    try:
        load_input(str(p))
        assert False, "expected PlanLoadError"
    except PlanLoadError as e:
        assert e.code == "E_EMPTY_SECTION"
        assert e.path == "config"


def test_load_bad_json(tmp_path):
    p = tmp_path / "project.json"
    p.write_text("{\"config\": ", encoding="utf-8")
    try:
        load_input(str(p))
        assert False, "expected PlanLoadError"
    except PlanLoadError as e:
        assert e.code == "E_JSON_PARSE"
