"""
Logging setup for the lathe simulator.

Modules log through ``logging.getLogger(__name__)``; this module only wires
handlers onto the application logger so repeated calls stay idempotent.
"""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Union

APP_LOGGER_NAME = "lathe_sim"
ENGINE_LOGGER_NAMES = ("core", "handlers", "config", "gcode_processor", "gui")

_CONSOLE_HANDLER = "lathe_sim_console"
_FILE_HANDLER = "lathe_sim_file"


def _handler_exists(logger: logging.Logger, name: str) -> bool:
    for handler in logger.handlers:
        if handler.get_name() == name:
            return True
    return False


def setup_logging(level: Union[int, str] = logging.INFO,
                  log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Initialize application logging.

    Args:
        level: Console log level.
        log_file: Optional path for a rotating debug log.

    Returns:
        The configured application logger.
    """
    root = logging.getLogger(APP_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    root.propagate = False

    if not _handler_exists(root, _CONSOLE_HANDLER):
        console = logging.StreamHandler()
        console.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                              datefmt="%H:%M:%S")
        )
        console.set_name(_CONSOLE_HANDLER)
        root.addHandler(console)

    for handler in root.handlers:
        if handler.get_name() == _CONSOLE_HANDLER:
            handler.setLevel(level)

    if log_file is not None and not _handler_exists(root, _FILE_HANDLER):
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        file_handler.set_name(_FILE_HANDLER)
        root.addHandler(file_handler)

    # Engine modules use their import names as logger names; route them here.
    for name in ENGINE_LOGGER_NAMES:
        engine_logger = logging.getLogger(name)
        engine_logger.setLevel(logging.DEBUG)
        engine_logger.propagate = False
        for handler in root.handlers:
            if handler not in engine_logger.handlers:
                engine_logger.addHandler(handler)

    return root
