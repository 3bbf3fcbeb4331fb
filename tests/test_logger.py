"""Tests for logging setup and key redaction."""

import logging
import sys

from conftest import TEST_PRIVATE_KEY
from hl_agent_gateway.utils.logger import (
    REDACTED,
    SecretRedactionFilter,
    get_component_logger,
    redact,
    set_global_log_level,
    setup_logger,
    short_hex,
)


def _record(msg, *args, exc_info=None):
    return logging.LogRecord("hlgw.test", logging.ERROR, __file__, 1, msg, args, exc_info)


def test_redact_masks_private_keys():
    assert redact(f"key={TEST_PRIVATE_KEY}") == f"key={REDACTED}"
    assert redact(f"key={TEST_PRIVATE_KEY[2:]}") == f"key={REDACTED}"


def test_redact_leaves_addresses_alone():
    text = "wallet 0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
    assert redact(text) == text


def test_filter_rewrites_formatted_message():
    record = _record("loading %s", TEST_PRIVATE_KEY)
    assert SecretRedactionFilter().filter(record) is True
    assert TEST_PRIVATE_KEY not in record.getMessage()
    assert REDACTED in record.getMessage()


def test_filter_masks_traceback():
    try:
        raise ValueError(f"bad key {TEST_PRIVATE_KEY}")
    except ValueError:
        record = _record("failed", exc_info=sys.exc_info())
    SecretRedactionFilter().filter(record)
    assert TEST_PRIVATE_KEY not in logging.Formatter().format(record)


def test_component_logger_name_and_single_handler():
    first = get_component_logger("unit")
    second = get_component_logger("unit")
    assert first is second
    assert first.name == "hlgw.unit"
    assert len(first.handlers) == 1


def test_file_handler_only_with_log_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    logger = setup_logger("hlgw.file_test", log_file="file_test.log")
    logger.error(f"secret {TEST_PRIVATE_KEY}")
    for handler in logger.handlers:
        handler.flush()

    content = (tmp_path / "file_test.log").read_text(encoding="utf-8")
    assert "secret" in content
    assert TEST_PRIVATE_KEY not in content


def test_env_log_level_override(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    assert setup_logger("hlgw.env_level").level == logging.DEBUG


def test_set_global_log_level():
    logger = get_component_logger("global_level")
    set_global_log_level("WARNING")
    assert logger.level == logging.WARNING
    set_global_log_level("INFO")
    assert logger.level == logging.INFO


def test_short_hex_truncates():
    assert short_hex(bytes(32)) == "0x0000000000…"
