"""
test_log.py — Tests for the script logging setup
"""

import logging

import pytest

from nanohmm.aligners import profile_hmm_align
from nanohmm.log import setup_logging


@pytest.fixture
def restore_loggers():
    package_logger = logging.getLogger("nanohmm")
    fill_logger = logging.getLogger("nanohmm.dp_core")
    saved = (list(package_logger.handlers), package_logger.level, fill_logger.level)
    yield
    package_logger.handlers[:] = saved[0]
    package_logger.setLevel(saved[1])
    fill_logger.setLevel(saved[2])


class TestSetupLogging:

    def test_configures_package_logger(self, restore_loggers):
        logger = setup_logging(logging.WARNING)
        assert logger.name == "nanohmm"
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_repeated_calls_do_not_stack_handlers(self, restore_loggers):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_trace_fill_enables_cell_trace(self, restore_loggers):
        setup_logging(logging.WARNING, trace_fill=True)
        assert logging.getLogger("nanohmm.dp_core").isEnabledFor(logging.DEBUG)
        assert not logging.getLogger("nanohmm.aligners").isEnabledFor(logging.DEBUG)

        setup_logging(logging.WARNING)
        assert not logging.getLogger("nanohmm.dp_core").isEnabledFor(logging.DEBUG)

    def test_trace_reaches_handler(self, restore_loggers, make_data, capsys):
        setup_logging(logging.WARNING, trace_fill=True)
        profile_hmm_align("AC", make_data([60.0, 70.0]))
        out = capsys.readouterr().out
        assert "row 2 block 2" in out
        assert "nanohmm.dp_core" in out
