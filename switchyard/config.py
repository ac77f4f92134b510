"""Router configuration dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

CONFIG_FILE = ".switchyard.yml"


@dataclass
class SwitchyardConfig:
    """Configuration shared by the router and the lead researcher."""

    model_name: str = "claude-sonnet-4-6"
    temperature: float = 0.0
    max_routing_history: int = 50
    max_research_history: int = 50
    debug: bool = False
    state_dir: str = ".switchyard/state"

    def __post_init__(self) -> None:
        if self.max_routing_history < 1:
            raise ValueError("max_routing_history must be at least 1")
        if self.max_research_history < 1:
            raise ValueError("max_research_history must be at least 1")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SwitchyardConfig:
        """Create config from a dictionary (e.g. from .switchyard.yml)."""
        config = cls()
        if "model" in data:
            config.model_name = str(data["model"])
        if "model_name" in data:
            config.model_name = str(data["model_name"])
        if "temperature" in data:
            config.temperature = float(data["temperature"])
        if "max_routing_history" in data:
            config.max_routing_history = int(data["max_routing_history"])
        if "max_research_history" in data:
            config.max_research_history = int(data["max_research_history"])
        if "debug" in data:
            config.debug = bool(data["debug"])
        if "state_dir" in data:
            config.state_dir = str(data["state_dir"])
        config.__post_init__()
        return config

    def resolve_state_dir(self, cwd: str) -> Path:
        path = Path(self.state_dir)
        return path if path.is_absolute() else Path(cwd).resolve() / path


def load_config(cwd: str) -> dict[str, Any] | None:
    """Load config from .switchyard.yml if it exists, else return None."""
    import yaml

    config_path = Path(cwd) / CONFIG_FILE
    if not config_path.exists():
        return None
    with config_path.open() as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else None


def resolve_config(cwd: str, **overrides: Any) -> SwitchyardConfig:
    """File values over defaults, non-None overrides over file values."""
    file_cfg = load_config(cwd) or {}
    config = SwitchyardConfig.from_dict(file_cfg)
    for key, value in overrides.items():
        if value is not None and hasattr(config, key):
            setattr(config, key, value)
    return config
