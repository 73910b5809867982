"""Unit tests for structured logging setup."""

import logging
from unittest.mock import patch

import structlog

from opsconsole.core import logging as ops_logging


@patch("opsconsole.core.logging.logging.basicConfig")
@patch("opsconsole.core.logging.structlog.configure")
class TestConfigureLogging:
    def test_json_format(self, mock_configure, mock_basic, monkeypatch):
        monkeypatch.setattr(ops_logging, "_configured", False)
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        ops_logging.configure_logging()

        processors = mock_configure.call_args.kwargs["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert mock_basic.call_args.kwargs["level"] == "DEBUG"
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_console_format_by_default(self, mock_configure, mock_basic, monkeypatch):
        monkeypatch.setattr(ops_logging, "_configured", False)

        ops_logging.configure_logging()

        processors = mock_configure.call_args.kwargs["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        assert mock_basic.call_args.kwargs["level"] == "INFO"

    def test_second_call_is_noop(self, mock_configure, mock_basic, monkeypatch):
        monkeypatch.setattr(ops_logging, "_configured", False)

        ops_logging.configure_logging()
        ops_logging.configure_logging()

        assert mock_configure.call_count == 1

        ops_logging.configure_logging(force=True)
        assert mock_configure.call_count == 2
        assert mock_basic.call_args.kwargs["force"] is True
