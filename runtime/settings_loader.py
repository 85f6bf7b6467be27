"""Settings loader: parse and validate actiongate.yaml."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from contracts.settings import Settings

CONFIG_ENV_VAR = "ACTIONGATE_CONFIG"
DEFAULT_CONFIG_PATH = "./actiongate.yaml"


def resolve_config_path(path: str | None = None) -> str:
    """Explicit *path*, else ``ACTIONGATE_CONFIG``, else ./actiongate.yaml."""
    if path is not None:
        return path
    return os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)


def load_settings(path: str | Path) -> Settings:
    """Load an actiongate.yaml file and return validated Settings."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    raw = p.read_text(encoding="utf-8")
    data = yaml.safe_load(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a YAML mapping, got {type(data).__name__}")

    return Settings(**data)
