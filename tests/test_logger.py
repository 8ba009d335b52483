"""Tests for utils/logger.py - console handler configuration."""

import importlib
import logging
import sys

import pytest

import config
from utils.logger import build_handler, get_logger


class TestBuildHandler:

    def test_stderr_stream(self):
        assert build_handler("stderr").stream is sys.stderr

    def test_stdout_stream(self):
        assert build_handler("stdout").stream is sys.stdout

    def test_unknown_stream_raises(self):
        with pytest.raises(ValueError, match="LOG_STREAM"):
            build_handler("syslog")

    def test_applies_format(self):
        handler = build_handler("stderr", fmt="%(levelname)s:%(message)s")
        record = logging.LogRecord("dbquery.query", logging.ERROR, __file__, 1, "boom", None, None)
        assert handler.format(record) == "ERROR:boom"


def test_log_stream_defaults_to_stderr(monkeypatch):
    monkeypatch.delenv("LOG_STREAM", raising=False)
    try:
        importlib.reload(config)
        assert config.LOG_STREAM == "stderr"
    finally:
        monkeypatch.undo()
        importlib.reload(config)


def test_get_logger_returns_named_logger():
    assert get_logger("dbquery.query").name == "dbquery.query"
