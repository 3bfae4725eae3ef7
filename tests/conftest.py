"""
Pytest configuration and shared fixtures for chocokit tests.
"""

import logging

import pytest

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.packages import (
    fake_sleep,
    choco_install,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def isolated_env(monkeypatch):
    """Remove Chocolatey environment variables for the test."""
    monkeypatch.delenv("ChocolateyInstall", raising=False)


@pytest.fixture
def chocokit_logs(caplog):
    """Capture chocokit debug logs."""
    with caplog.at_level(logging.DEBUG, logger="chocokit"):
        yield caplog
