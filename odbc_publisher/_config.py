"""Layered settings loader used by the CLI and test helpers."""

import json
import os
from pathlib import Path
from typing import Any

from ._logging import get_logger, redact_config

LOGGER = get_logger("config")


def _read_prefixed_env(prefix: str) -> dict[str, Any]:
    """Read environment keys matching <PREFIX>_* and normalize key names."""
    prefix_token = f"{prefix.upper()}_"
    values: dict[str, Any] = {}

    for key, value in os.environ.items():
        if key.startswith(prefix_token):
            normalized_key = key.removeprefix(prefix_token).lower()
            values[normalized_key] = value

    LOGGER.debug("Loaded %s settings keys from environment prefix %s", len(values), prefix_token)
    return values


def read_settings_file(file_path: str | Path | None) -> dict[str, Any]:
    """Read a JSON or YAML settings file, or return an empty mapping when no path is given."""
    if not file_path:
        return {}

    path = Path(file_path)
    if not path.exists():
        LOGGER.error("Settings file not found: %s", file_path)
        raise FileNotFoundError(f"Settings file not found: {file_path}")

    suffix = path.suffix.lower()
    content = path.read_text(encoding="utf-8")

    if suffix in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except ImportError as exc:
            raise RuntimeError("PyYAML is not installed. Install the 'yaml' extra to use YAML settings files.") from exc

        data = yaml.safe_load(content)
    else:
        data = json.loads(content)

    if not isinstance(data, dict):
        raise ValueError("Settings file must contain an object at the root")

    LOGGER.debug("Loaded settings file %s", file_path)
    return data


def _not_none_values(values: dict[str, Any] | None) -> dict[str, Any]:
    """Drop keys with None values to avoid overriding previous layers."""
    if not values:
        return {}
    return {key: value for key, value in values.items() if value is not None}


def load_settings_config(
    config: dict[str, Any] | None = None,
    *,
    file_path: str | Path | None = None,
    env_prefix: str | None = "ODBC",
    defaults: dict[str, Any] | None = None,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Resolve raw settings from defaults, file, env, config, and overrides (last layer wins)."""
    env_config = _read_prefixed_env(env_prefix) if env_prefix else {}

    merged: dict[str, Any] = {}
    for layer in (
        defaults or {},
        read_settings_file(file_path),
        env_config,
        config or {},
        _not_none_values(overrides),
    ):
        merged.update(layer)

    LOGGER.info("Settings resolved: %s", redact_config(merged))
    return merged
