# tests/conftest.py

"""Shared pytest fixtures for all wishmatch tests."""

from collections.abc import Generator
from unittest.mock import patch

import pytest

from wishmatch.storage.parser_log import ParserLog


@pytest.fixture(autouse=True)
def mock_sleep() -> Generator[None, None, None]:
    """Patch time.sleep globally so retry loops run instantly."""
    with patch("time.sleep"):
        yield


@pytest.fixture(autouse=True)
def fresh_parser_log() -> Generator[None, None, None]:
    """Give every test its own process-wide parser log."""
    ParserLog.reset()
    yield
    ParserLog.reset()
