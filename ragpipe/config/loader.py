"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers win):

    1. config/config.yaml  -- defaults checked into the repo
    2. .env file           -- local overrides (not committed)
    3. Environment vars    -- deploy-time overrides

Only settings that were explicitly provided through the environment or
``.env`` override YAML values, so a YAML default is never clobbered by a
pydantic field default.
"""

from pathlib import Path
from typing import Any

import yaml

from ragpipe.config.settings import Settings

# Settings field -> (section, key) in the resolved config dict.
_ENV_TO_CONFIG: dict[str, tuple[str, str]] = {
    "search_result_count": ("rag", "search_result_count"),
    "embedding_relevance_cut_off": ("rag", "embedding_relevance_cut_off"),
    "insert_batch_size": ("rag", "insert_batch_size"),
    "temperature": ("rag", "temperature"),
    "query_template": ("rag", "query_template"),
    "embedding_provider": ("providers", "embedding"),
    "vector_store": ("providers", "vector_store"),
    "cache_backend": ("providers", "cache"),
    "reranker_model": ("providers", "reranker_model"),
    "log_level": ("logging", "level"),
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge explicitly-set environment Settings on top.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
              an empty base.
        settings: Settings instance to read overrides from; a fresh
                  ``Settings()`` is built when omitted.

    Returns:
        Resolved configuration dictionary with ``rag``, ``providers`` and
        ``logging`` sections.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides: dict[str, Any] = {"rag": {}, "providers": {}, "logging": {}}
    for field_name in settings.model_fields_set:
        target = _ENV_TO_CONFIG.get(field_name)
        if target is None:
            continue
        section, key = target
        env_overrides[section][key] = getattr(settings, field_name)

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
