# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for logging configuration."""

import logging

import pytest

from floodaid.core.config.settings import Settings
from floodaid.utils.logging import REDACTED, redact_sensitive, setup_logging


@pytest.fixture
def root_handlers():
    """Restore the root logger handlers after the test."""
    root = logging.getLogger()
    saved, level = list(root.handlers), root.level
    yield
    root.handlers[:] = saved
    root.setLevel(level)


class TestRedaction:
    """Tests for the credential-masking processor."""

    def test_sensitive_keys_are_masked(self) -> None:
        """Test that passwords, codes and tokens never reach the renderer."""
        event = {
            "event": "login",
            "password": "Admin-Pass-1",
            "otp": "042917",
            "refresh_token": "abc",
            "admin_id": 4,
        }

        result = redact_sensitive(None, "info", event)

        assert result["password"] == REDACTED
        assert result["otp"] == REDACTED
        assert result["refresh_token"] == REDACTED
        assert result["admin_id"] == 4
        assert result["event"] == "login"


@pytest.mark.usefixtures("root_handlers")
class TestSetupLogging:
    """Tests for setup_logging."""

    def test_package_logger_level_follows_settings(self) -> None:
        """Test that the floodaid logger uses the configured level."""
        setup_logging(Settings(log_level="WARNING", debug=False, environment="staging"))

        assert logging.getLogger("floodaid").level == logging.WARNING
        assert logging.getLogger("sqlalchemy").level == logging.WARNING

    def test_development_configuration(self) -> None:
        """Test that development configuration sets the debug level."""
        setup_logging(Settings(log_level="DEBUG", environment="development"))

        assert logging.getLogger("floodaid").level == logging.DEBUG

    def test_stdlib_records_are_redacted(self, capsys) -> None:
        """Test that standard library log records pass through the masking processor."""
        setup_logging(Settings(log_level="INFO", debug=False, environment="staging"))

        logging.getLogger("floodaid.auth").info("Login attempt", extra={"password": "Admin-Pass-1"})

        out = capsys.readouterr().out
        assert "Login attempt" in out
        assert "Admin-Pass-1" not in out
        assert REDACTED in out
