"""Tests for configuration loading."""

from __future__ import annotations

import pytest

from switchyard.config import SwitchyardConfig, load_config, resolve_config


def test_defaults():
    cfg = SwitchyardConfig()
    assert cfg.model_name == "claude-sonnet-4-6"
    assert cfg.max_routing_history == 50
    assert cfg.max_research_history == 50


def test_load_config_missing(tmp_path):
    assert load_config(str(tmp_path)) is None


def test_load_config_from_yaml(tmp_path):
    (tmp_path / ".switchyard.yml").write_text(
        "model: gpt-4o-mini\nmax_routing_history: 10\ndebug: true\n"
    )
    cfg = resolve_config(str(tmp_path))
    assert cfg.model_name == "gpt-4o-mini"
    assert cfg.max_routing_history == 10
    assert cfg.debug is True


def test_overrides_beat_file_values(tmp_path):
    (tmp_path / ".switchyard.yml").write_text("model: gpt-4o-mini\n")
    cfg = resolve_config(str(tmp_path), model_name="claude-opus-4-6", temperature=None)
    assert cfg.model_name == "claude-opus-4-6"
    assert cfg.temperature == 0.0


def test_invalid_history_cap():
    with pytest.raises(ValueError):
        SwitchyardConfig.from_dict({"max_routing_history": 0})


def test_state_dir_relative_to_cwd(tmp_path):
    cfg = SwitchyardConfig(state_dir="data/state")
    assert cfg.resolve_state_dir(str(tmp_path)) == tmp_path.resolve() / "data" / "state"
