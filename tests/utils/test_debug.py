"""Tests for logging setup."""

import logging

import pytest

from mediaprint.utils import debug


@pytest.fixture(autouse=True)
def reset_logger(monkeypatch: pytest.MonkeyPatch):
    logger = logging.getLogger(debug.LOGGER_NAME)
    saved_handlers, saved_level = list(logger.handlers), logger.level
    logger.handlers.clear()
    monkeypatch.setattr(debug, "_logger", None)
    yield
    logger.handlers[:] = saved_handlers
    logger.setLevel(saved_level)


def test_debug_enabled(monkeypatch: pytest.MonkeyPatch) -> None:
    assert debug.debug_enabled() is False
    monkeypatch.setenv("MEDIAPRINT_DEBUG", "1")
    assert debug.debug_enabled() is True


def test_setup_logger_defaults_to_info() -> None:
    logger = debug.setup_logger()

    assert logger.name == "mediaprint"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1


def test_setup_logger_verbose_and_idempotent(monkeypatch: pytest.MonkeyPatch) -> None:
    debug.setup_logger()
    logger = debug.setup_logger(verbose=True)

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1


def test_setup_logger_honours_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MEDIAPRINT_DEBUG", "1")

    assert debug.setup_logger().level == logging.DEBUG
