"""Application logging setup."""

import logging

import pytest

from utils.logging_config import APP_LOGGER_NAME, ENGINE_LOGGER_NAMES, setup_logging


@pytest.fixture(autouse=True)
def restore_loggers():
    names = (APP_LOGGER_NAME,) + ENGINE_LOGGER_NAMES
    saved = {name: (list(logging.getLogger(name).handlers),
                    logging.getLogger(name).propagate,
                    logging.getLogger(name).level) for name in names}
    yield
    for name, (handlers, propagate, level) in saved.items():
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.propagate = propagate
        logger.setLevel(level)


def test_setup_is_idempotent():
    logger = setup_logging(logging.WARNING)
    count = len(logger.handlers)
    setup_logging(logging.DEBUG)
    assert len(logger.handlers) == count
    assert logger.name == APP_LOGGER_NAME


def test_console_level_follows_latest_call():
    logger = setup_logging(logging.WARNING)
    setup_logging(logging.DEBUG)
    console = [h for h in logger.handlers if h.get_name() == "lathe_sim_console"]
    assert console[0].level == logging.DEBUG


def test_engine_loggers_share_handlers(tmp_path):
    log_file = tmp_path / "logs" / "lathe.log"
    logger = setup_logging(logging.INFO, log_file=log_file)

    for name in ENGINE_LOGGER_NAMES:
        engine_logger = logging.getLogger(name)
        assert not engine_logger.propagate
        assert set(logger.handlers) <= set(engine_logger.handlers)

    logging.getLogger("core.simulation_controller").debug("tick")
    for handler in logger.handlers:
        handler.flush()
    assert "tick" in log_file.read_text()
