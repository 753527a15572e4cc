"""handlr configuration and logging setup."""

from __future__ import annotations

import logging
import os
import re
import sys
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import structlog
import xdg.BaseDirectory

from handlr.core.errors import ConfigError
from handlr.core.handler import RegexHandler, RegexRouter

ENV_CONFIG = "HANDLR_CONFIG"
ENV_LOG = "HANDLR_LOG"
CONFIG_NAME = "handlr.toml"
LOG_NAME = "handlr.log"
LOGGER_NAME = "handlr"

DEFAULT_SELECTOR = "rofi -dmenu -i -p 'Open With: '"
# Most xterm-compatible emulators need -e to take a command
DEFAULT_TERM_EXEC_ARGS = "-e"


@dataclass
class Config:
    """Parsed handlr.toml."""

    enable_selector: bool = False
    """Ask which handler to use when a MIME has several defaults."""

    selector: str = DEFAULT_SELECTOR
    """Menu command that reads options on stdin and prints the choice."""

    term_exec_args: str | None = DEFAULT_TERM_EXEC_ARGS
    """Appended to the terminal emulator's Exec. None disables."""

    handlers: list[RegexHandler] = field(default_factory=list)
    """Regex handlers, in file order."""

    @property
    def router(self) -> RegexRouter:
        return RegexRouter(tuple(self.handlers))

    def override_selector(
        self, selector: str | None = None, enable: bool | None = None
    ) -> Config:
        """Copy with CLI selector overrides applied. Never saved."""
        return replace(
            self,
            selector=selector if selector is not None else self.selector,
            enable_selector=enable if enable is not None else self.enable_selector,
        )


# === Config Loading ===


def config_path() -> Path:
    """$HANDLR_CONFIG if set, else $XDG_CONFIG_HOME/handlr/handlr.toml."""
    env_path = os.environ.get(ENV_CONFIG)
    if env_path:
        return Path(env_path).expanduser()
    return Path(xdg.BaseDirectory.xdg_config_home) / "handlr" / CONFIG_NAME


def load_config(path: Path | None = None) -> Config:
    """Load the config file. A missing file yields defaults.

    TOML syntax errors propagate as tomllib.TOMLDecodeError.
    """
    path = path or config_path()
    if not path.is_file():
        return Config()
    with open(path, "rb") as f:
        data = tomllib.load(f)
    try:
        return parse_config(data)
    except ConfigError as e:
        raise ConfigError(f"{path}: {e}") from None


def _expect(data: dict[str, Any], key: str, kind: type, where: str = "") -> Any:
    value = data[key]
    if not isinstance(value, kind):
        raise ConfigError(f"{where}'{key}' must be a {kind.__name__}")
    return value


def _parse_handler(index: int, raw: Any) -> RegexHandler:
    where = f"handlers[{index}]: "
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}must be a table")
    unknown = set(raw) - {"exec", "terminal", "regexes"}
    if unknown:
        raise ConfigError(f"{where}unknown key '{sorted(unknown)[0]}'")
    for required in ("exec", "regexes"):
        if required not in raw:
            raise ConfigError(f"{where}requires '{required}'")

    exec_ = _expect(raw, "exec", str, where).strip()
    if not exec_:
        raise ConfigError(f"{where}'exec' must not be empty")
    terminal = _expect(raw, "terminal", bool, where) if "terminal" in raw else False
    regexes = _expect(raw, "regexes", list, where)
    if not all(isinstance(r, str) for r in regexes):
        raise ConfigError(f"{where}'regexes' must be a list of strings")

    try:
        return RegexHandler.from_sources(exec_, regexes, terminal=terminal)
    except re.error as e:
        raise ConfigError(f"{where}invalid regex '{e.pattern}': {e.msg}") from None


def parse_config(data: dict[str, Any]) -> Config:
    """Build a Config from decoded TOML. Raises ConfigError on bad values."""
    settings: dict[str, Any] = {}

    for key in data:
        if key == "enable_selector":
            settings[key] = _expect(data, key, bool)
        elif key == "selector":
            settings[key] = _expect(data, key, str)
        elif key == "term_exec_args":
            # TOML has no null; an empty string turns the extra args off
            settings[key] = _expect(data, key, str).strip() or None
        elif key == "handlers":
            raw_handlers = _expect(data, key, list)
            settings[key] = [_parse_handler(i, h) for i, h in enumerate(raw_handlers)]
        else:
            raise ConfigError(f"unknown setting '{key}'")

    return Config(**settings)


# === Logging ===

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def verbosity_level(verbosity: int) -> int:
    """Map -q (-1) / default (0) / -v (1) / -vv (2+) to a logging level."""
    env_level = os.environ.get(ENV_LOG, "").strip().lower()
    if env_level in _LEVELS:
        return _LEVELS[env_level]
    if verbosity < 0:
        return logging.ERROR
    if verbosity == 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def log_path() -> Path:
    return Path(xdg.BaseDirectory.xdg_cache_home) / "handlr" / LOG_NAME


def _stderr_echo(threshold: int):
    """Processor printing events at or above threshold to stderr."""

    def echo(_logger, method_name: str, event_dict: dict) -> dict:
        level = event_dict.get("level", method_name)
        if _LEVELS.get(level, logging.DEBUG) >= threshold:
            context = " ".join(
                f"{k}={v}" for k, v in event_dict.items() if k not in ("event", "level")
            )
            line = f"{level}: {event_dict.get('event', '')} {context}".rstrip()
            print(line, file=sys.stderr)
        return event_dict

    return echo


def _file_logger(path: Path) -> logging.Logger:
    """The stdlib logger that owns the log file. Reconfiguring closes the old file."""
    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
    except OSError:
        # No log file; stderr echo still works
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger


def configure_logging(verbosity: int = 0, path: Path | None = None) -> None:
    """Configure structlog: everything as JSON lines to the log file,
    events at the verbosity threshold echoed to stderr. Call once at startup.
    """
    file_logger = _file_logger(path or log_path())

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            _stderr_echo(verbosity_level(verbosity)),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        logger_factory=lambda *args: file_logger,
        cache_logger_on_first_use=False,
    )
