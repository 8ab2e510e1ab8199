"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml   Static defaults checked into the repo
#   2. .env file            Local developer overrides (not committed)
#   3. Environment vars     Set at deploy time
#
# load_config() reads the YAML file first, then deep-merges the
# environment-derived values on top.  Missing YAML keys fall back to
# DEFAULT_CONFIG so a trimmed config file never breaks startup.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from panel_oracle.config.settings import Settings
from panel_oracle.utils.errors import ConfigurationError

DEFAULT_CONFIG: dict[str, Any] = {
    "app": {"name": "panel-oracle", "version": "0.1.0"},
    "rate_limits": {
        "sweep_interval_seconds": 300,
        "policies": {
            "ask": {"max_requests": 10, "window_seconds": 60},
            "search": {"max_requests": 60, "window_seconds": 60},
            "api": {"max_requests": 100, "window_seconds": 60},
        },
    },
    "retrieval": {
        "ask": {"threshold": 0.65, "panel_limit": 10, "sbs_limit": 3},
        "search": {"threshold": 0.70, "default_limit": 20, "max_limit": 50},
    },
    "generation": {"temperature": 0.3, "max_tokens": 1000},
    "input": {"max_question_length": 1000, "max_query_length": 500},
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings instance to read overrides from.  A fresh one is
                  built from the environment when omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: If the YAML file is not a mapping.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(f"{path} must contain a mapping at the top level")
        _deep_merge(config, yaml_config)

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "llm": {
            "model": settings.get_text_model(),
            "embedding_model": settings.openai_embedding_model,
            "configured": bool(settings.openai_api_key),
        },
        "corpus": {
            "backend": "supabase" if settings.supabase_configured() else "chromadb",
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
