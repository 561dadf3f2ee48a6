"""Opal login driven by a config mapping.

Secrets are read from environment variables (or a `.env` file in the working
directory) unless given in the config itself. Config shape::

    opal:
      url: https://opal.example.org
      username: administrator
      password_env: OPAL_PASSWORD
      token_env: OPAL_TOKEN
      timeout_s: 30
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..errors import MissingArgumentError
from ..opal.client import OpalClient, opal_login
from .config import build_config
from .logging import DEFAULT_LOGGING

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "logging": DEFAULT_LOGGING,
    "opal": {
        "url": None,
        "username": None,
        "password": None,
        "password_env": "OPAL_PASSWORD",
        "token": None,
        "token_env": "OPAL_TOKEN",
        "timeout_s": 30.0,
        "locale": "en",
    },
}


def load_config(
    yaml_path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """`DEFAULT_CONFIG` < YAML file < overrides."""
    return build_config(DEFAULT_CONFIG, yaml_path, overrides)


def opal_login_from_config(config: Mapping[str, Any]) -> OpalClient:
    """Log into Opal with the `opal` section of `config`.

    A token (config value, else `token_env`) takes precedence over
    username/password (config value, else `password_env`).

    Raises
    ------
    MissingArgumentError
        If the URL is not set or no usable credentials are found.
    """
    opal_cfg = {**DEFAULT_CONFIG["opal"], **(config.get("opal") or {})}

    url = opal_cfg.get("url")
    if not url:
        raise MissingArgumentError("Missing Opal URL; set opal.url in the config")

    load_dotenv()
    token = opal_cfg.get("token") or os.getenv(opal_cfg["token_env"])
    username = opal_cfg.get("username")
    password = opal_cfg.get("password") or os.getenv(opal_cfg["password_env"])

    if not token and not (username and password):
        raise MissingArgumentError(
            "Missing Opal credentials. Set env var "
            f"{opal_cfg['token_env']}, or opal.username and env var "
            f"{opal_cfg['password_env']}."
        )

    logger.info(
        "Opal login url=%s auth=%s", url, "token" if token else "password"
    )
    return opal_login(
        url,
        username=None if token else username,
        password=None if token else password,
        token=token or None,
        timeout_s=float(opal_cfg["timeout_s"]),
        locale=opal_cfg["locale"],
    )
