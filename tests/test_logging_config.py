import logging

import pytest

from app.logging_config import LOG_FORMAT, NOISY_LOGGERS, _resolve_level, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    saved = (root.level, list(root.handlers))
    yield root
    root.handlers[:] = saved[1]
    root.setLevel(saved[0])


@pytest.mark.parametrize(
    "given, expected",
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), (logging.ERROR, logging.ERROR), ("verbose", logging.INFO)],
)
def test_resolve_level(given, expected):
    assert _resolve_level(given) == expected


def test_setup_logging_installs_single_stdout_handler(restore_root_logger):
    root = restore_root_logger
    setup_logging("debug")
    setup_logging("info")

    assert root.level == logging.INFO
    assert len(root.handlers) == 1
    assert root.handlers[0].formatter._fmt == LOG_FORMAT
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
