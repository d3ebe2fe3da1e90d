"""
Tests for configuration loading and merging.

Tests the layered config system: defaults < backlog/config.yml < env vars.
"""

import logging

import pytest
from pydantic import ValidationError

from backlogkit.core.config import BacklogConfig, clear_cache, get_config_path, load_config
from backlogkit.core.config.loader import apply_env_overrides, load_yaml_file


class TestConfigModel:
    def test_defaults(self):
        config = BacklogConfig()
        assert config.id_prefix == "TASK"
        assert config.statuses == ["To Do", "In Progress", "Done"]
        assert config.priorities == ["high", "medium", "low"]
        assert config.first_status == "To Do"
        assert config.resolved_terminal_statuses == ["Done", "Archived"]
        assert config.task_resolution_strategy == "most_recent"

    def test_camel_case_keys(self):
        config = BacklogConfig(**{"taskPrefix": "bug-", "zeroPaddedIds": 3, "defaultStatus": "Doing"})
        assert config.id_prefix == "bug"
        assert config.zero_padded_ids == 3
        assert config.first_status == "Doing"

    def test_explicit_terminal_statuses(self):
        config = BacklogConfig(terminal_statuses=["Shipped"])
        assert config.is_terminal("shipped")
        assert not config.is_terminal("Done")

    def test_is_terminal(self):
        config = BacklogConfig()
        assert config.is_terminal(" done ")
        assert config.is_terminal("ARCHIVED")
        assert not config.is_terminal("In Progress")
        assert not config.is_terminal(None)

    def test_milestone_names(self):
        config = BacklogConfig(milestones=["v1", {"id": "m-2", "name": "v2"}])
        assert [m.name for m in config.milestones] == ["v1", "v2"]
        assert config.milestones[0].id == "v1"

    def test_unknown_keys_allowed(self):
        config = BacklogConfig(**{"defaultEditor": "vim"})
        assert config.model_extra == {"default_editor": "vim"}

    def test_invalid_strategy(self):
        with pytest.raises(ValidationError):
            BacklogConfig(task_resolution_strategy="random")

    def test_empty_statuses_rejected(self):
        with pytest.raises(ValidationError):
            BacklogConfig(statuses=[])


class TestLoadYamlFile:
    def test_missing(self, tmp_path):
        assert load_yaml_file(tmp_path / "nope.yml") is None

    def test_invalid_yaml(self, tmp_path, caplog):
        path = tmp_path / "config.yml"
        path.write_text("statuses: [unclosed\n")
        with caplog.at_level(logging.WARNING):
            assert load_yaml_file(path) is None
        assert "Failed to parse config" in caplog.text

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- a\n- b\n")
        assert load_yaml_file(path) is None


class TestLoadConfig:
    def test_defaults_without_file(self, backlog_dir):
        assert load_config(backlog_dir) == BacklogConfig()

    def test_project_file(self, backlog_dir):
        (backlog_dir / "config.yml").write_text(
            'project_name: "Demo"\n'
            'statuses: ["Backlog", "Doing", "Shipped"]\n'
            "zeroPaddedIds: true\n"
            "task_resolution_strategy: most_progressed\n"
        )
        config = load_config(backlog_dir)
        assert config.project_name == "Demo"
        assert config.statuses == ["Backlog", "Doing", "Shipped"]
        assert config.zero_padded_ids is True
        assert config.resolved_terminal_statuses == ["Shipped", "Archived"]
        assert config.task_resolution_strategy == "most_progressed"

    def test_yaml_extension(self, backlog_dir):
        (backlog_dir / "config.yaml").write_text("id_prefix: ISSUE\n")
        assert get_config_path(backlog_dir).name == "config.yaml"
        assert load_config(backlog_dir).id_prefix == "ISSUE"

    def test_env_overrides_file(self, backlog_dir, monkeypatch):
        (backlog_dir / "config.yml").write_text("idPrefix: FILE\n")
        monkeypatch.setenv("BACKLOG_ID_PREFIX", "ENV")
        monkeypatch.setenv("BACKLOG_STATUSES", "Open, Closed")
        config = load_config(backlog_dir)
        assert config.id_prefix == "ENV"
        assert config.statuses == ["Open", "Closed"]

    def test_cache(self, backlog_dir):
        path = backlog_dir / "config.yml"
        path.write_text("id_prefix: ONE\n")
        assert load_config(backlog_dir).id_prefix == "ONE"

        path.write_text("id_prefix: TWO\n")
        assert load_config(backlog_dir).id_prefix == "ONE"
        assert load_config(backlog_dir, use_cache=False).id_prefix == "TWO"

        clear_cache()
        assert load_config(backlog_dir).id_prefix == "TWO"


class TestEnvOverrides:
    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("false", False), ("4", 4), ("no", False)],
    )
    def test_zero_padded(self, monkeypatch, raw, expected):
        monkeypatch.setenv("BACKLOG_ZERO_PADDED_IDS", raw)
        assert apply_env_overrides({})["zero_padded_ids"] == expected

    def test_blank_statuses_ignored(self, monkeypatch):
        monkeypatch.setenv("BACKLOG_STATUSES", " , ")
        assert "statuses" not in apply_env_overrides({})

    def test_does_not_mutate_input(self, monkeypatch):
        monkeypatch.setenv("BACKLOG_ID_PREFIX", "X")
        original = {"id_prefix": "Y"}
        apply_env_overrides(original)
        assert original == {"id_prefix": "Y"}
