from __future__ import annotations

import logging
from pathlib import Path

import pytest

from rfxsynth.logging_utils import (
    DEBUG_ENV,
    LOG_DIR_ENV,
    LoggingSettings,
    configure_logging,
    log_exception,
)


class TestLoggingSettings:
    def test_log_dir_uses_env_override(self, tmp_path: Path) -> None:
        settings = LoggingSettings.from_env({LOG_DIR_ENV: str(tmp_path)})
        assert settings.log_dir == tmp_path
        assert settings.log_path == tmp_path / "rfxsynth.log"

    def test_default_log_dir_is_under_home_cache(self) -> None:
        settings = LoggingSettings.from_env({})
        assert settings.log_dir == Path.home() / ".cache" / "rfxsynth" / "logs"
        assert not settings.debug

    def test_debug_flag_sets_console_level(self) -> None:
        assert LoggingSettings.from_env({DEBUG_ENV: "1"}).console_level == logging.DEBUG
        assert LoggingSettings.from_env({DEBUG_ENV: ""}).console_level == logging.INFO

    def test_reads_process_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path))
        monkeypatch.setenv(DEBUG_ENV, "1")
        settings = LoggingSettings.from_env()
        assert settings.log_dir == tmp_path
        assert settings.debug


def test_configure_logging_installs_file_handler(tmp_path: Path) -> None:
    settings = LoggingSettings(log_dir=tmp_path / "logs")
    active = configure_logging(settings, force=True)
    logger = logging.getLogger("rfxsynth")

    file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
    assert active == settings
    assert len(file_handlers) == 1
    assert Path(file_handlers[0].baseFilename) == settings.log_path
    assert logger.propagate

    logging.getLogger("rfxsynth.engine").debug("rendered 12 samples")
    file_handlers[0].flush()
    assert "rendered 12 samples" in settings.log_path.read_text(encoding="utf-8")


def test_configure_logging_is_idempotent_until_forced(tmp_path: Path) -> None:
    first = configure_logging(LoggingSettings(log_dir=tmp_path / "a"), force=True)
    assert configure_logging(LoggingSettings(log_dir=tmp_path / "b")) is first

    second = configure_logging(LoggingSettings(log_dir=tmp_path / "b"), force=True)
    logger = logging.getLogger("rfxsynth")
    file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
    assert second.log_dir == tmp_path / "b"
    assert [Path(h.baseFilename) for h in file_handlers] == [second.log_path]


def test_configure_logging_keeps_foreign_handlers(tmp_path: Path) -> None:
    logger = logging.getLogger("rfxsynth")
    foreign = logging.NullHandler()
    logger.addHandler(foreign)
    try:
        configure_logging(LoggingSettings(log_dir=tmp_path), force=True)
        assert foreign in logger.handlers
    finally:
        logger.removeHandler(foreign)


def test_unwritable_log_dir_is_reported_not_raised(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    settings = LoggingSettings(log_dir=blocker / "logs")

    configure_logging(settings, force=True)

    logger = logging.getLogger("rfxsynth")
    assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)
    assert log_exception("render", ValueError("boom"), settings=settings) is None


def test_log_exception_appends_traceback(tmp_path: Path) -> None:
    settings = LoggingSettings(log_dir=tmp_path / "nested")
    try:
        raise ValueError("bad cutoff")
    except ValueError as exc:
        path = log_exception("render", exc, settings=settings)

    assert path == settings.log_path
    text = path.read_text(encoding="utf-8")
    assert "render failed: ValueError: bad cutoff" in text
    assert "Traceback" in text
