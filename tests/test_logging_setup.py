import logging

import pytest

from spend_sync import logging_setup
from spend_sync.logging_setup import get_logger


def test_get_logger_returns_package_child():
    log = get_logger("spend_sync.action_queue")
    assert log.name == "spend_sync.action_queue"
    assert logging.getLogger("spend_sync").handlers


@pytest.mark.parametrize(
    "level, expected",
    [(logging.DEBUG, logging.DEBUG), ("warning", logging.WARNING), ("10", 10), ("bogus", logging.INFO)],
)
def test_parse_level(level, expected):
    assert logging_setup._parse_level(level) == expected


def test_level_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("SPEND_SYNC_LOG_LEVEL", "ERROR")
    assert logging_setup._parse_level(None) == logging.ERROR
    monkeypatch.delenv("SPEND_SYNC_LOG_LEVEL")
    assert logging_setup._parse_level(None) == logging.INFO
