"""Tests for structured logging setup and pass tagging."""

import json
import logging

import pytest

from copytrade.logging_config import (
    JSONFormatter,
    PassContext,
    StructuredFormatter,
    get_logger,
    get_pass_id,
    setup_logging,
)


def _record(msg="hello", **extra):
    record = logging.LogRecord("copytrade.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, (JSONFormatter, StructuredFormatter)):
            handler.close()
            root.removeHandler(handler)
    root.setLevel(level)


class TestPassContext:
    def test_sets_and_resets_pass_id(self):
        assert get_pass_id() is None
        with PassContext(7, trader="0xabc"):
            assert get_pass_id() == "pass-7"
        assert get_pass_id() is None

    def test_nested_contexts(self):
        with PassContext(1):
            with PassContext(2):
                assert get_pass_id() == "pass-2"
            assert get_pass_id() == "pass-1"


class TestFormatters:
    def test_json_includes_pass_context(self):
        formatter = JSONFormatter(extra_fields={"service": "copytrade"})
        with PassContext(3, trader="0xabc"):
            data = json.loads(formatter.format(_record()))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["pass_id"] == "pass-3"
        assert data["trader"] == "0xabc"
        assert data["service"] == "copytrade"
        assert data["timestamp"].endswith("Z")

    def test_json_carries_extra_data(self):
        data = json.loads(JSONFormatter().format(_record(extra_data={"actions": 2})))
        assert data["extra"] == {"actions": 2}

    def test_console_line(self):
        formatter = StructuredFormatter(use_color=False)
        with PassContext(4):
            line = formatter.format(_record("synced", extra_data={"errors": 0}))

        assert "[INFO]" in line
        assert "[pass-4]" in line
        assert "synced" in line
        assert "errors=0" in line


class TestSetup:
    def test_writes_json_file(self, tmp_path, restore_root_logger):
        setup_logging(log_dir=tmp_path, level="DEBUG", console_output=False)
        get_logger("copytrade.test").info("pass finished", actions=3)

        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = (tmp_path / "copytrade.log").read_text().strip().splitlines()
        entry = json.loads(lines[-1])
        assert entry["message"] == "pass finished"
        assert entry["extra"] == {"actions": 3}

    def test_replaces_existing_handlers(self, tmp_path, restore_root_logger):
        setup_logging(log_dir=tmp_path, console_output=True)
        setup_logging(log_dir=tmp_path, console_output=True)
        assert len(logging.getLogger().handlers) == 2
