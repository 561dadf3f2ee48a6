"""Logging setup for applications and notebooks using mlstr_opal.

Library modules only do `logger = logging.getLogger(__name__)`; the calling
application runs `setup_logging(...)` once.

The console handler adds `record.shortname` (last dotted component of the
logger name), so console formats may use `%(shortname)s`, e.g. `fetch` for
`mlstr_opal.taxonomy.fetch`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

# HTTP stack used by OpalClient; DEBUG there logs every connection
NOISY_LOGGERS: tuple[str, ...] = ("urllib3", "requests")

_LEVEL_NAMES: dict[str, int] = {
    "CRITICAL": logging.CRITICAL,
    "FATAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


class _ShortNameFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.shortname = record.name.rsplit(".", 1)[-1]
        return True


class _LevelColorFormatter(logging.Formatter):
    """Console formatter colouring the level name with ANSI codes."""

    _RESET = "\033[0m"
    _COLORS: dict[int, str] = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self._COLORS.get(record.levelno)
        if color is None:
            return super().format(record)

        levelname = record.levelname
        record.levelname = f"{color}{levelname}{self._RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def coerce_level(level: int | str) -> int:
    """Accept `logging.INFO`, `"info"` or `"20"`."""
    if isinstance(level, int):
        return level

    name = str(level).strip().upper()
    if not name:
        raise ValueError("Empty logging level")
    if name.isdigit():
        return int(name)
    if name not in _LEVEL_NAMES:
        raise ValueError(f"Unknown logging level: {level!r}")
    return _LEVEL_NAMES[name]


def setup_logging(
    level: int | str = "INFO",
    *,
    fmt_console: str = DEFAULT_FORMAT,
    fmt_file: str = DEFAULT_FORMAT,
    datefmt: str = DEFAULT_DATEFMT,
    log_file: str | Path | None = None,
    module_levels: Mapping[str, int | str] | None = None,
    colored: bool = False,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Configure the root logger (call once per process).

    Parameters
    - level: Root level, int or name.
    - fmt_console: Console format; `%(shortname)s` is available.
    - fmt_file: Format of the optional file handler (never coloured).
    - log_file: Also write logs to this file; parent folders are created.
    - module_levels: Per-logger level overrides, e.g.
      `{"mlstr_opal.opal.client": "DEBUG"}`.
    - colored: Colour console level names.
    - quiet_loggers: Loggers capped at WARNING.

    Handlers are replaced (`force=True`), so calling it again in a notebook
    does not duplicate output.
    """
    console = logging.StreamHandler()
    console.addFilter(_ShortNameFilter())
    formatter_cls = _LevelColorFormatter if colored else logging.Formatter
    console.setFormatter(formatter_cls(fmt=fmt_console, datefmt=datefmt))
    handlers: list[logging.Handler] = [console]

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(fmt=fmt_file, datefmt=datefmt))
        handlers.append(file_handler)

    logging.basicConfig(level=coerce_level(level), handlers=handlers, force=True)

    for name, lvl in (module_levels or {}).items():
        logging.getLogger(name).setLevel(coerce_level(lvl))

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
