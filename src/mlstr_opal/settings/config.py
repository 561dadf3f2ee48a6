"""YAML configuration layered over in-code defaults.

`build_config(defaults, path, overrides)` merges, in increasing priority:
the defaults, the YAML file (if any), then explicit overrides.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml


def load_yaml_config(path: str | Path | None) -> dict[str, Any]:
    """Read a YAML mapping; `None` reads as an empty config."""
    if path is None:
        return {}

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {p}")

    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Config file must contain a YAML mapping at the top level: {p}"
        )
    return data


def deep_merge(base: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge `updates` into a copy of `base`.

    Nested mappings are merged key by key; any other value in `updates`
    replaces the one in `base`. Neither input is mutated.
    """
    merged = {
        k: deep_merge(v, {}) if isinstance(v, Mapping) else v for k, v in base.items()
    }
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(current, value)
        elif isinstance(value, Mapping):
            merged[key] = deep_merge(value, {})
        else:
            merged[key] = value
    return merged


def build_config(
    defaults: Mapping[str, Any],
    yaml_path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    config = deep_merge(defaults, load_yaml_config(yaml_path))
    return deep_merge(config, overrides) if overrides else config


def resolve_path(value: str | Path | None) -> Path | None:
    """Expand `~` and environment variables in a configured path."""
    if value is None or isinstance(value, Path):
        return value
    return Path(os.path.expandvars(os.path.expanduser(value)))
