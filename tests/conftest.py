"""Pytest configuration for smtdiff tests.

Shared configuration for all test suites.
"""

import logging
import pathlib
import sys

import pytest

# Configure logging
logging.basicConfig(level=logging.INFO)

# Add project root to path for all tests to ensure imports work
PROJECT_ROOT = pathlib.Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def smtdiff_home(tmp_path, monkeypatch) -> pathlib.Path:
    """Point $SMTDIFF_HOME at a temporary directory."""
    home = tmp_path / "smtdiff-home"
    monkeypatch.setenv("SMTDIFF_HOME", str(home))
    return home


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: solver-heavy test")
