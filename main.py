"""
Main entry point for the CNC lathe trainer.
Initializes logging and the Qt application, sets up the main window, and starts the event loop.
"""

import logging
import sys
from PySide6.QtWidgets import QApplication
from gui.main_window import MainWindow
from utils.logging_config import setup_logging


def main():
    """Initializes and runs the PySide6 application."""
    level = logging.DEBUG if "--debug" in sys.argv else logging.INFO
    logger = setup_logging(level)
    logger.info("Starting lathe trainer")

    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == '__main__':
    main()
