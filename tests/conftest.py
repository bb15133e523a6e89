"""
Pytest configuration and shared fixtures for the lathe simulator tests.
"""

import os
import sys

import pytest

# Add the parent directory to Python path so the top-level packages import
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from config.machine_config import ConfigManager
from core.machine_state import HomePosition
from core.parser import parse
from core.interpreter import interpret


@pytest.fixture
def config():
    return ConfigManager.lathe()


@pytest.fixture
def tool_table(config):
    return config.tool_table()


@pytest.fixture
def home():
    return HomePosition(100.0, 50.0)


@pytest.fixture
def run(tool_table, home):
    """Parse a program and replay it to the last statement (or ``upto``)."""
    def _run(text, upto=None):
        statements = parse(text)
        index = len(statements) - 1 if upto is None else upto
        return interpret(statements, index, tool_table=tool_table, home=home)
    return _run
