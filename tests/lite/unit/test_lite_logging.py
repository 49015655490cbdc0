"""Tests for calendarapp_lite.lite_logging and the package logging bootstrap."""

import logging
import os
from unittest.mock import patch

import pytest
from colorlog import ColoredFormatter

from calendarapp_lite import _init_logging
from calendarapp_lite.lite_logging import (
    LITE_MODULES,
    NOISY_LOGGERS,
    configure_lite_logging,
    env_debug_enabled,
    get_logging_status,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def restore_logging():
    """Put logger levels and root handlers back after each test."""
    names = ["", *NOISY_LOGGERS, *LITE_MODULES]
    levels = {name: logging.getLogger(name).level for name in names}
    root = logging.getLogger()
    handlers = list(root.handlers)
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


class TestConfigureLiteLogging:
    """Tests for configure_lite_logging function."""

    def test_configure_lite_logging_default_production_mode(self):
        configure_lite_logging()

        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
        assert logging.getLogger("calendarapp_lite").level == logging.INFO

    def test_configure_lite_logging_debug_mode(self):
        configure_lite_logging(debug_mode=True)

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("calendarapp_lite.lite_parser").level == logging.DEBUG
        # Third-party loggers stay quiet
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_configure_lite_logging_force_debug_overrides_env(self):
        with patch.dict(os.environ, {"CALENDARAPP_DEBUG": "true"}):
            configure_lite_logging(debug_mode=True, force_debug=False)
        assert logging.getLogger().level == logging.INFO

    def test_configure_lite_logging_env_debug(self):
        with patch.dict(os.environ, {"CALENDARAPP_DEBUG": "1"}):
            configure_lite_logging()
        assert logging.getLogger("calendarapp_lite").level == logging.DEBUG

    def test_configure_lite_logging_env_log_level(self):
        with patch.dict(os.environ, {"CALENDARAPP_LOG_LEVEL": "warning"}):
            configure_lite_logging(debug_mode=True)
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("calendarapp_lite").level == logging.DEBUG

    def test_configure_lite_logging_ignores_unknown_env_level(self):
        with patch.dict(os.environ, {"CALENDARAPP_LOG_LEVEL": "LOUD"}):
            configure_lite_logging()
        assert logging.getLogger().level == logging.INFO


@pytest.mark.parametrize(("value", "expected"), [("1", True), ("YES", True), (" on ", True), ("0", False), ("", False)])
def test_env_debug_enabled(monkeypatch, value, expected):
    monkeypatch.setenv("CALENDARAPP_DEBUG", value)
    assert env_debug_enabled() is expected


def test_get_logging_status_reports_levels():
    configure_lite_logging(debug_mode=True)
    status = get_logging_status()
    assert status["root"] == "DEBUG"
    assert status["calendarapp_lite"] == "DEBUG"
    assert status["httpx"] == "WARNING"


def test_init_logging_installs_colored_handler_once():
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    try:
        _init_logging("warning")
        _init_logging("info")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ColoredFormatter)
        assert root.level == logging.INFO
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)


def test_init_logging_unknown_level_falls_back_to_info():
    _init_logging("chatty")
    assert logging.getLogger().level == logging.INFO


def test_init_logging_env_debug_forces_debug(monkeypatch):
    monkeypatch.setenv("CALENDARAPP_DEBUG", "true")
    _init_logging("ERROR")
    assert logging.getLogger().level == logging.DEBUG
