from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..utils.logging_config import setup_logging
from .config import resolve_path

DEFAULT_LOGGING: dict[str, Any] = {
    "level": "INFO",
    "format": "%(asctime)s %(levelname)s %(shortname)s - %(message)s",
    "file": None,
    "color": True,
    "module_levels": {},
}

# Alternative key -> canonical key (setup_logging keyword names)
_ALIASES: dict[str, str] = {
    "fmt_console": "format",
    "log_file": "file",
    "colored": "color",
}


def _normalize_logging_config(config: Mapping[str, Any] | None) -> dict[str, Any]:
    """Fill a `logging` config section with defaults; `None` values are ignored."""
    out = dict(DEFAULT_LOGGING)
    if not config:
        return out

    for key in DEFAULT_LOGGING:
        if config.get(key) is not None:
            out[key] = config[key]

    # Alternative keys win over canonical ones
    for alias, key in _ALIASES.items():
        if config.get(alias) is not None:
            out[key] = config[alias]
    return out


def setup_logging_from_config(config: Mapping[str, Any] | None) -> None:
    """Apply the `logging` section of a config mapping."""
    cfg = _normalize_logging_config(config)
    setup_logging(
        cfg["level"],
        fmt_console=cfg["format"],
        log_file=resolve_path(cfg["file"]),
        module_levels=cfg["module_levels"],
        colored=bool(cfg["color"]),
    )
