"""YAML configuration loader with environment variable overrides.

Configuration is layered, later layers winning:

  1. ``config/config.yaml`` -- tuning defaults checked into the repo
     (chunk sizes, retrieval budgets, sampling parameters, limits)
  2. ``.env`` file and environment variables, read through
     :class:`~docqa.config.settings.Settings`

Sections consumed by :mod:`docqa.main`: ``chunking``, ``retrieval``,
``answer``, ``ingestion``, ``limits``, plus the env-derived ``app``,
``store`` and ``logging``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from docqa.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge environment-based Settings over it.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
            an empty base so the service still starts on code defaults.
        settings: Settings instance to read overrides from.  A fresh one
            is built when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides: dict[str, Any] = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "store": {
            "backend": settings.vector_store,
            "table": settings.documents_table,
            "scope_per_user": settings.scope_documents_per_user,
        },
        "ingestion": {
            "temp_dir": settings.resolve_temp_dir(),
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def section(config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config section as a dict, or ``{}`` when absent or null."""
    value = config.get(name)
    return value if isinstance(value, dict) else {}


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
