"""Load runtime configuration for the phone directory."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .settings import RuntimeConfig

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).with_name("lookup.yaml")

# env("VAR") or env("VAR", "default")
ENV_PATTERN = re.compile(r'env\("([^"]+)"(?:\s*,\s*"([^"]*)")?\)')


def _resolve_env_placeholders(value: Any) -> Any:
    """Recursively resolve env("VAR") placeholders in YAML values."""
    if isinstance(value, str):
        match = ENV_PATTERN.search(value)
        if match:
            var_name, default = match.group(1), match.group(2)
            env_value = os.getenv(var_name)
            if env_value is None:
                if default is None:
                    raise ValueError(f"Environment variable {var_name} not set (required by config)")
                logger.debug(f"Environment variable {var_name} not set, using default")
                return default
            return env_value
        return value
    elif isinstance(value, dict):
        return {k: _resolve_env_placeholders(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_placeholders(item) for item in value]
    else:
        return value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge override dict into base dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _compute_config_version(yaml_content: str, override_content: Dict[str, Any]) -> str:
    """SHA256 of the YAML text plus overrides, truncated to 16 hex chars."""
    combined = {
        "yaml": yaml_content,
        "override": json.dumps(override_content, sort_keys=True),
    }
    combined_str = json.dumps(combined, sort_keys=True)
    return hashlib.sha256(combined_str.encode("utf-8")).hexdigest()[:16]


def load_runtime_config(
    path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> RuntimeConfig:
    """Load runtime configuration from YAML with optional overrides.

    A ``priority_policy`` mapping in the overrides replaces the file's table
    wholesale rather than merging into it, so types can be removed.
    """
    target = path or CONFIG_PATH

    with target.open("r", encoding="utf-8") as handle:
        yaml_content = handle.read()
        data = yaml.safe_load(yaml_content) or {}

    data = _resolve_env_placeholders(data)

    overrides = overrides or {}
    if overrides:
        policy_override = overrides.get("priority_policy")
        data = _deep_merge(data, {k: v for k, v in overrides.items() if k != "priority_policy"})
        if policy_override is not None:
            data["priority_policy"] = policy_override

    if "metadata" not in data or data["metadata"] is None:
        data["metadata"] = {}
    data["metadata"]["config_version"] = _compute_config_version(yaml_content, overrides)

    return RuntimeConfig.model_validate(data)
