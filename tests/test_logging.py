import logging

import pytest

from orderflow.utils.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_level():
    logger = logging.getLogger("orderflow")
    level = logger.level
    yield
    logger.setLevel(level)


def test_setup_logging_explicit_level():
    setup_logging(level="ERROR")
    assert logging.getLogger("orderflow").level == logging.ERROR


def test_setup_logging_invalid_level_defaults_to_info():
    setup_logging(level="LOUD")
    assert logging.getLogger("orderflow").level == logging.INFO


def test_get_logger_is_namespaced():
    assert get_logger("orderflow.services.order_service").name == "orderflow.services.order_service"
