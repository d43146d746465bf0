from __future__ import annotations
import os
from pathlib import Path
from typing import Dict, Optional

import tomllib

from .engine.layout import LayoutParams

USER_CFG = Path.home() / ".config" / "workflow-designer" / "config.toml"
PROJECT_CFG = Path("workflow-designer.toml")

ENV_PREFIX = "WORKFLOW_DESIGNER_"

DEFAULTS: Dict[str, object] = {
    # Snake layout
    "nodes_per_row": 5,
    "horizontal_spacing": 200,
    "vertical_spacing": 120,
    "origin_x": 50,
    "origin_y": 50,
    # Scenario generation
    "llm_base_url": "http://localhost:8080/v1",
    "llm_model": "local-model",
    "llm_api_key": "no-key",
    "temperature": 0.7,
    "max_tokens": 1000,
    "max_retries": 2,
}

_INT_KEYS = {"nodes_per_row", "horizontal_spacing", "vertical_spacing", "origin_x", "origin_y",
             "max_tokens", "max_retries"}
_FLOAT_KEYS = {"temperature"}


def _read_toml(path: Path) -> Dict:
    if not path.exists():
        return {}
    with path.open("rb") as f:
        return tomllib.load(f)


def init_default_config(force: bool = False) -> Path:
    target = USER_CFG
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.exists() and not force:
        return target
    text = """# workflow-designer config (user)
# You can override any of these in a project-local ./workflow-designer.toml

# Snake layout
nodes_per_row = 5
horizontal_spacing = 200
vertical_spacing = 120
origin_x = 50
origin_y = 50

# Scenario generation (OpenAI-compatible endpoint)
llm_base_url = "http://localhost:8080/v1"
llm_model = "local-model"
llm_api_key = "no-key"
temperature = 0.7
max_tokens = 1000
max_retries = 2
"""
    target.write_text(text)
    return target


def _coerce(name: str, v):
    if v is None:
        return None
    try:
        if name in _FLOAT_KEYS:
            return float(v)
        if name in _INT_KEYS:
            return int(v)
    except (TypeError, ValueError):
        return None
    return v


def merged_config(project_cfg: Optional[Path] = None) -> Dict:
    cfg_user = _read_toml(USER_CFG)
    cfg_proj = _read_toml(project_cfg or Path.cwd() / PROJECT_CFG)

    # environment overrides, e.g. WORKFLOW_DESIGNER_NODES_PER_ROW
    env = {k: _coerce(k, os.getenv(ENV_PREFIX + k.upper())) for k in DEFAULTS}

    # merge: defaults -> user -> project -> env
    settings = DEFAULTS.copy()

    def overlay(d: Dict):
        if not isinstance(d, dict):
            return
        for k in settings.keys():
            value = _coerce(k, d.get(k))
            if value is not None:
                settings[k] = value

    overlay(cfg_user)
    overlay(cfg_proj)
    overlay(env)

    return settings


def layout_params(cfg: Dict) -> LayoutParams:
    return LayoutParams(
        nodes_per_row=int(cfg["nodes_per_row"]),
        horizontal_spacing=int(cfg["horizontal_spacing"]),
        vertical_spacing=int(cfg["vertical_spacing"]),
        origin_x=int(cfg["origin_x"]),
        origin_y=int(cfg["origin_y"]),
    )
