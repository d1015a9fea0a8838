"""Tests for settings and logging bootstrap."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from community.config import Settings
from community.errors import ConfigError
from community.logging_utils import configure_logging


@pytest.fixture()
def restore_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_defaults_without_environment():
    settings = Settings.from_env({})
    assert settings.app_title == "City Community"
    assert settings.log_level == "INFO"
    assert settings.structured_logs is True
    assert settings.handler_timeout_seconds == 5.0
    assert settings.seed_cities is True
    assert settings.super_admin_id is None


def test_values_are_read_from_prefixed_variables():
    settings = Settings.from_env(
        {
            "COMMUNITY_LOG_LEVEL": "debug",
            "COMMUNITY_STRUCTURED_LOGS": "no",
            "COMMUNITY_HANDLER_TIMEOUT_SECONDS": "2.5",
            "COMMUNITY_SEED_CITIES": "0",
            "COMMUNITY_SUPER_ADMIN_ID": "user-1",
            "LOG_LEVEL": "ERROR",
        }
    )
    assert settings.log_level == "DEBUG"
    assert settings.structured_logs is False
    assert settings.handler_timeout_seconds == 2.5
    assert settings.seed_cities is False
    assert settings.super_admin_id == "user-1"


def test_blank_super_admin_is_ignored():
    assert Settings.from_env({"COMMUNITY_SUPER_ADMIN_ID": "   "}).super_admin_id is None


@pytest.mark.parametrize(
    "key, value",
    [
        ("COMMUNITY_LOG_LEVEL", "verbose"),
        ("COMMUNITY_HANDLER_TIMEOUT_SECONDS", "0"),
        ("COMMUNITY_HANDLER_TIMEOUT_SECONDS", "soon"),
    ],
)
def test_invalid_values_raise_config_error(key, value):
    with pytest.raises(ConfigError) as exc_info:
        Settings.from_env({key: value})
    assert exc_info.value.status_code == 500
    assert "Invalid configuration" in exc_info.value.detail


def test_structured_logging_emits_json(restore_logging, capsys):
    configure_logging(Settings(structured_logs=True, log_level="INFO"))

    structlog.get_logger("community.test").info("sample.logged", answer=42)
    structlog.get_logger("community.test").debug("sample.hidden")

    lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["event"] == "sample.logged"
    assert record["answer"] == 42
    assert record["level"] == "info"
    assert record["logger"] == "community.test"
