"""Tests for logging_config.py."""

import logging

import pytest

from php_sanitizer.logging_config import (
    VERBOSITY_LEVELS,
    apply_verbosity,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_level():
    logger = logging.getLogger("php_sanitizer")
    level = logger.level
    yield
    logger.setLevel(level)


class TestGetLogger:
    def test_root(self):
        assert get_logger().name == "php_sanitizer"

    def test_module_name_kept(self):
        assert get_logger("php_sanitizer.orchestrator").name == "php_sanitizer.orchestrator"

    def test_foreign_name_prefixed(self):
        assert get_logger("scanner").name == "php_sanitizer.scanner"


class TestLevels:
    @pytest.mark.parametrize(
        "verbose, quiet, level",
        [
            (False, False, logging.WARNING),
            (True, False, logging.DEBUG),
            (False, True, logging.ERROR),
            (True, True, logging.ERROR),
        ],
    )
    def test_setup_logging(self, verbose, quiet, level):
        assert setup_logging(verbose=verbose, quiet=quiet).level == level

    def test_apply_verbosity(self):
        for verbosity, level in VERBOSITY_LEVELS.items():
            assert apply_verbosity(verbosity).level == level

    def test_unknown_verbosity_falls_back_to_warning(self):
        assert apply_verbosity("chatty").level == logging.WARNING
