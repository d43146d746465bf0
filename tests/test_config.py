"""Test layered configuration loading."""

import pytest

from workflow_designer import config
from workflow_designer.engine.layout import LayoutParams


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the user config at an empty temp dir and clear env overrides."""
    monkeypatch.setattr(config, "USER_CFG", tmp_path / "user" / "config.toml")
    for key in config.DEFAULTS:
        monkeypatch.delenv(config.ENV_PREFIX + key.upper(), raising=False)
    return tmp_path


class TestMergedConfig:

    def test_defaults(self, isolated_config):
        cfg = config.merged_config(isolated_config / "missing.toml")
        assert cfg == config.DEFAULTS

    def test_project_overrides_user(self, isolated_config):
        config.USER_CFG.parent.mkdir(parents=True)
        config.USER_CFG.write_text('nodes_per_row = 4\nllm_model = "user-model"\n')
        project_cfg = isolated_config / "workflow-designer.toml"
        project_cfg.write_text("nodes_per_row = 3\n")

        cfg = config.merged_config(project_cfg)

        assert cfg["nodes_per_row"] == 3
        assert cfg["llm_model"] == "user-model"

    def test_env_overrides_files(self, isolated_config, monkeypatch):
        project_cfg = isolated_config / "workflow-designer.toml"
        project_cfg.write_text("temperature = 0.2\n")
        monkeypatch.setenv("WORKFLOW_DESIGNER_TEMPERATURE", "0.9")
        monkeypatch.setenv("WORKFLOW_DESIGNER_HORIZONTAL_SPACING", "250")

        cfg = config.merged_config(project_cfg)

        assert cfg["temperature"] == 0.9
        assert cfg["horizontal_spacing"] == 250

    def test_bad_env_value_ignored(self, isolated_config, monkeypatch):
        monkeypatch.setenv("WORKFLOW_DESIGNER_NODES_PER_ROW", "lots")
        assert config.merged_config(isolated_config / "missing.toml")["nodes_per_row"] == 5

    def test_unknown_keys_ignored(self, isolated_config):
        project_cfg = isolated_config / "workflow-designer.toml"
        project_cfg.write_text('theme = "dark"\n')

        assert "theme" not in config.merged_config(project_cfg)


class TestInitDefaultConfig:

    def test_writes_once(self, isolated_config):
        path = config.init_default_config()
        path.write_text("nodes_per_row = 2\n")

        assert config.init_default_config() == path
        assert path.read_text() == "nodes_per_row = 2\n"

    def test_force_rewrites(self, isolated_config):
        path = config.init_default_config()
        path.write_text("")
        config.init_default_config(force=True)

        assert config.merged_config(isolated_config / "missing.toml") == config.DEFAULTS
        assert "nodes_per_row = 5" in path.read_text()


def test_layout_params_from_config():
    params = config.layout_params({**config.DEFAULTS, "nodes_per_row": 3})
    assert params == LayoutParams(nodes_per_row=3)
