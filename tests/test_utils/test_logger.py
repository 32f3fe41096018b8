"""Tests for logging helpers."""

import io
import json
from unittest.mock import MagicMock

import pytest
import structlog

from keystore.utils import logger as logger_module
from keystore.utils.logger import log_operation, redact_url, setup_logging


class TestRedactUrl:
    def test_credentials_removed(self):
        assert (
            redact_url("mysql+aiomysql://root:secret@db:3306/app")
            == "mysql+aiomysql://db:3306/app"
        )

    def test_password_only(self):
        assert redact_url("redis://:secret@cache:6379/0") == "redis://cache:6379/0"

    def test_url_without_credentials_unchanged(self):
        assert redact_url("redis://localhost:6379/0") == "redis://localhost:6379/0"

    def test_sqlite_path_unchanged(self):
        url = "sqlite+aiosqlite:////var/lib/keystore.db"
        assert redact_url(url) == url


class TestLogOperation:
    @pytest.fixture
    def mock_logger(self, monkeypatch):
        mock = MagicMock()
        monkeypatch.setattr(logger_module, "get_logger", lambda name=None: mock)
        return mock

    def test_success_logged_at_debug(self, mock_logger):
        """Test successful operations are logged at debug with rounded timing."""
        log_operation("get", "k", "volatile", 1.234, hit=True)

        mock_logger.debug.assert_called_once_with(
            "operation_complete",
            operation="get",
            key="k",
            tier="volatile",
            duration_ms=1.23,
            error=None,
            hit=True,
        )
        mock_logger.error.assert_not_called()

    def test_failure_logged_at_error(self, mock_logger):
        """Test failed operations are logged at error."""
        log_operation("set", "k", "durable", 2.0, error="locked")

        args, kwargs = mock_logger.error.call_args
        assert args == ("operation_failed",)
        assert kwargs["error"] == "locked"
        mock_logger.debug.assert_not_called()


class TestSetupLogging:
    @pytest.fixture
    def restore_config(self):
        """Put the structlog configuration back after setup_logging() replaced it."""
        saved = structlog.get_config()
        yield
        structlog.configure(**saved)

    def test_writes_json_to_given_stream(self, restore_config, monkeypatch):
        """Test rendered lines go to the requested stream as JSON."""
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        buffer = io.StringIO()

        setup_logging("INFO", stream=buffer)
        structlog.get_logger("test").info("keystore_trace", step="get")

        record = json.loads(buffer.getvalue().splitlines()[-1])
        assert record["event"] == "keystore_trace"
        assert record["step"] == "get"
        assert record["level"] == "info"

    def test_level_filters(self, restore_config, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        buffer = io.StringIO()

        setup_logging("WARNING", stream=buffer)
        structlog.get_logger("test").info("keystore_trace", step="get")

        assert buffer.getvalue() == ""
