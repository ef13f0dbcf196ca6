"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Iterator, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import PathclassConfig

ENV_PREFIX = "PATHCLASS__"

# Bare variables honoured for compatibility with deployments that predate the
# PATHCLASS__ namespace. Values map onto dotted config paths.
LEGACY_ENV_KEYS: dict[str, str] = {
    "REDIS_URL": "cache.redis_url",
}

_SOURCE_ORDER = ("file", "environment", "cli")


def resolve_with_precedence(
    *,
    defaults: PathclassConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> PathclassConfig:
    """Merge configuration layers, later layers winning: defaults, file, environment, CLI.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML configuration file.
        env_overrides: Nested values extracted from environment variables.
        cli_overrides: Dotted-key overrides supplied on the command line.

    Returns:
        PathclassConfig: Validated configuration.

    Raises:
        ConfigError: If an override layer is malformed or the result fails validation.
    """
    layers = dict(zip(_SOURCE_ORDER, (file_overrides, env_overrides, cli_overrides)))
    merged = defaults.model_dump(mode="python")
    for source_name in _SOURCE_ORDER:
        layer = layers[source_name]
        if layer is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(layer, source_name=source_name))

    try:
        return PathclassConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: PathclassConfig) -> Dict[str, str]:
    """Render the config as `PATHCLASS__SECTION__KEY` environment variable mappings."""
    return {
        ENV_PREFIX + "__".join(part.upper() for part in path): _render_env_value(value)
        for path, value in _walk(config.model_dump(mode="python"), [])
    }


def extract_env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect nested overrides from `PATHCLASS__` and legacy environment variables.

    Namespaced variables win over legacy ones when both target the same field.
    """
    overrides: dict[str, Any] = {}
    for legacy_key, dotted in LEGACY_ENV_KEYS.items():
        raw_value = env.get(legacy_key)
        if raw_value:
            _set_path(overrides, dotted.split("."), raw_value, source_name="environment")

    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        _set_path(overrides, segments, _parse_scalar(raw_value), source_name="environment")
    return overrides


def _walk(value: Any, prefix: list[str]) -> Iterator[tuple[list[str], Any]]:
    if isinstance(value, dict):
        for key, child in value.items():
            yield from _walk(child, prefix + [str(key)])
    else:
        yield prefix, value


def _render_env_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return yaml.safe_dump(value, default_flow_style=True).strip()
    return str(value)


def _parse_scalar(raw_value: str) -> Any:
    try:
        parsed = yaml.safe_load(raw_value)
    except yaml.YAMLError:
        return raw_value
    # Values such as "pathway:cls:v1:" read as one-key mappings; only braces denote one.
    if isinstance(parsed, dict) and not raw_value.lstrip().startswith("{"):
        return raw_value
    return parsed


def _expand_dotted(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = _expand_dotted(value, source_name=source_name)
        _set_path(expanded, key.split("."), value, source_name=source_name)
    return expanded


def _set_path(target: dict[str, Any], path: list[str], value: Any, *, source_name: str) -> None:
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(
                f"{source_name.capitalize()} override for {'.'.join(path)} "
                "conflicts with existing value."
            )
        node = child
    leaf = path[-1]
    if isinstance(value, dict) and isinstance(node.get(leaf), dict):
        node[leaf] = _deep_merge(node[leaf], value)
    else:
        node[leaf] = value


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = deepcopy(dict(base))
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "LEGACY_ENV_KEYS",
    "resolve_with_precedence",
    "flatten_for_env",
    "extract_env_overrides",
]
