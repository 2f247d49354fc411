import json
import logging

import pytest

from visa_seal.config import Settings
from visa_seal.logging_config import (
    SealJSONFormatter,
    ServiceNameFilter,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield root_logger
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(level)


def test_settings_defaults():
    config = Settings()

    assert config.mrz_century_cutoff == 60
    assert config.seal_version == 0x03
    assert config.signature_length == 64


def test_settings_environment_override(monkeypatch):
    monkeypatch.setenv("VISA_SEAL_MRZ_CENTURY_CUTOFF", "30")
    monkeypatch.setenv("VISA_SEAL_LOG_FORMAT", "json")

    config = Settings()

    assert config.mrz_century_cutoff == 30
    assert config.log_format == "json"


def test_setup_logging_json(restore_root_logger):
    setup_logging("visa-test", Settings(log_level="debug", log_format="json"))

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0].formatter, SealJSONFormatter)


def test_setup_logging_text(restore_root_logger):
    setup_logging("visa-test", Settings(log_level="WARNING", log_format="text"))

    handler = restore_root_logger.handlers[0]
    assert restore_root_logger.level == logging.WARNING
    assert not isinstance(handler.formatter, SealJSONFormatter)
    assert any(isinstance(f, ServiceNameFilter) for f in handler.filters)


def test_setup_logging_off(restore_root_logger):
    setup_logging("visa-test", Settings(log_level="OFF"))

    assert restore_root_logger.handlers == []
    assert restore_root_logger.level > logging.CRITICAL


def test_setup_logging_invalid_level(restore_root_logger, capsys):
    setup_logging("visa-test", Settings(log_level="LOUD"))

    assert restore_root_logger.level == logging.INFO
    assert "Invalid log level 'LOUD'" in capsys.readouterr().err


def test_json_formatter_output():
    record = logging.LogRecord(
        name="visa_seal.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg="Imported seal for visa %s",
        args=("T32069231",),
        exc_info=None,
    )
    ServiceNameFilter("visa-test").filter(record)

    entry = json.loads(SealJSONFormatter().format(record))

    assert entry["level"] == "INFO"
    assert entry["service"] == "visa-test"
    assert entry["logger"] == "visa_seal.test"
    assert entry["message"] == "Imported seal for visa T32069231"
    assert entry["line"] == 42
    assert "exception" not in entry


def test_get_logger():
    assert get_logger("visa_seal.vds") is logging.getLogger("visa_seal.vds")
