"""Tests for structured logging setup."""

import json
import logging

import pytest
import structlog

from expense_tracker.config import Settings
from expense_tracker.logging_config import (
    build_processors,
    configure_logging,
    get_logger,
    redact_secrets,
)


@pytest.fixture(autouse=True)
def restore_structlog():
    yield
    structlog.reset_defaults()


def test_redact_secrets() -> None:
    event = redact_secrets(
        None, "info", {"event": "login_failed", "password": "hunter2", "email": "a@b.io"}
    )

    assert event == {"event": "login_failed", "password": "***", "email": "a@b.io"}


def test_console_and_json_chains_differ() -> None:
    console = build_processors(Settings(_env_file=None, log_format="console"))
    as_json = build_processors(Settings(_env_file=None, log_format="json"))

    assert isinstance(console[-1], structlog.dev.ConsoleRenderer)
    assert isinstance(as_json[-1], structlog.processors.JSONRenderer)


def test_json_output(capsys) -> None:
    configure_logging(
        Settings(_env_file=None, log_format="json", environment="testing")
    )

    get_logger("expense_tracker.tests").info(
        "expense_created", expense_id="abc", token="secret-token"
    )

    line = capsys.readouterr().out.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["event"] == "expense_created"
    assert payload["expense_id"] == "abc"
    assert payload["token"] == "***"
    assert payload["environment"] == "testing"
    assert payload["level"] == "info"


def test_log_file(tmp_path) -> None:
    log_file = tmp_path / "logs" / "app.log"
    configure_logging(Settings(_env_file=None, log_file=log_file))

    get_logger("expense_tracker.tests").warning("monthly_rollup_skipped_record")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "monthly_rollup_skipped_record" in log_file.read_text()
