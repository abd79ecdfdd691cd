"""Logging setup for rfxsynth.

``RFXSYNTH_LOG_DIR`` moves the log file (default
``~/.cache/rfxsynth/logs/rfxsynth.log``). ``RFXSYNTH_DEBUG`` lowers the
console level to DEBUG and makes CLI errors print their traceback.
"""

from __future__ import annotations

import logging
import os
import sys
import traceback
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

_LOGGER = logging.getLogger("rfxsynth.logging")

LOG_DIR_ENV = "RFXSYNTH_LOG_DIR"
DEBUG_ENV = "RFXSYNTH_DEBUG"
LOG_FILE_NAME = "rfxsynth.log"

_PACKAGE_LOGGER = "rfxsynth"
_CONSOLE_HANDLER = "rfxsynth.console"
_FILE_HANDLER = "rfxsynth.file"
_LEVEL_PREFIXES: Mapping[int, str] = MappingProxyType(
    {
        logging.DEBUG: "🐛",
        logging.INFO: "ℹ️",
        logging.WARNING: "⚠️",
        logging.ERROR: "❌",
        logging.CRITICAL: "💥",
    }
)

_active: LoggingSettings | None = None


class LoggingSettings(BaseModel):
    """Where the log file lives and how verbose the console is."""

    log_dir: Path
    debug: bool = False

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "LoggingSettings":
        env = os.environ if environ is None else environ
        configured = env.get(LOG_DIR_ENV)
        if configured:
            log_dir = Path(configured).expanduser()
        else:
            log_dir = Path.home() / ".cache" / "rfxsynth" / "logs"
        return cls(log_dir=log_dir, debug=bool(env.get(DEBUG_ENV)))

    @property
    def log_path(self) -> Path:
        return self.log_dir / LOG_FILE_NAME

    @property
    def console_level(self) -> int:
        return logging.DEBUG if self.debug else logging.INFO


class _PrefixFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.level_prefix = _LEVEL_PREFIXES.get(record.levelno, "")
        return super().format(record)


def _console_handler(settings: LoggingSettings) -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.__stderr__)
    handler.set_name(_CONSOLE_HANDLER)
    handler.setLevel(settings.console_level)
    handler.setFormatter(_PrefixFormatter("%(level_prefix)s %(name)s: %(message)s"))
    return handler


def _file_handler(settings: LoggingSettings) -> logging.Handler | None:
    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(settings.log_path, encoding="utf-8")
    except OSError as exc:
        _LOGGER.warning("Failed to open log file %s: %s", settings.log_path, exc)
        return None
    handler.set_name(_FILE_HANDLER)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return handler


def configure_logging(
    settings: LoggingSettings | None = None,
    *,
    force: bool = False,
) -> LoggingSettings:
    """Attach rfxsynth's console and file handlers to the ``rfxsynth`` logger.

    Later calls return the active settings unless ``force`` is set, which
    replaces only the handlers installed here. The console handler is left
    out when the application has already configured the root logger.
    """

    global _active
    if _active is not None and not force:
        return _active

    resolved = settings or LoggingSettings.from_env()
    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        if handler.get_name() in (_CONSOLE_HANDLER, _FILE_HANDLER):
            logger.removeHandler(handler)
            handler.close()

    if not logging.getLogger().handlers:
        logger.addHandler(_console_handler(resolved))
    file_handler = _file_handler(resolved)
    if file_handler is not None:
        logger.addHandler(file_handler)

    logger.propagate = True
    _active = resolved
    return resolved


def log_exception(
    context: str,
    exc: BaseException,
    *,
    settings: LoggingSettings | None = None,
) -> Path | None:
    """Append a timestamped traceback to the log file and return its path."""

    resolved = settings or LoggingSettings.from_env()
    path = resolved.log_path
    try:
        resolved.log_dir.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{datetime.now().isoformat()}] {context} failed: {type(exc).__name__}: {exc}\n")
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=handle)
            handle.write("\n")
    except OSError as log_exc:
        _LOGGER.warning("Failed to write log file %s: %s", path, log_exc)
        return None
    return path
