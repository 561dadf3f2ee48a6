"""Configuration files, logging setup and config-driven Opal login."""

from .config import build_config, deep_merge, load_yaml_config, resolve_path
from .connection import DEFAULT_CONFIG, load_config, opal_login_from_config
from .logging import DEFAULT_LOGGING, setup_logging_from_config

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_LOGGING",
    "build_config",
    "deep_merge",
    "load_config",
    "load_yaml_config",
    "opal_login_from_config",
    "resolve_path",
    "setup_logging_from_config",
]
