"""Root pytest configuration."""
import logging
import os

import pytest

from src.servicekit.utils.logging.context import set_service_name


def pytest_configure(config):
    """Register the integration marker."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires Redis/PostgreSQL)"
    )


def pytest_runtest_setup(item):
    """Skip integration tests if not enabled."""
    if item.get_closest_marker("integration"):
        if not os.getenv("RUN_INTEGRATION_TESTS"):
            pytest.skip(
                "Integration tests skipped. Set RUN_INTEGRATION_TESTS=1 to run."
            )


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Undo handler changes made by configure_logging() in a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    set_service_name(None)


# Import fixtures from fixtures modules to make them available globally
pytest_plugins = [
    "tests.fixtures.db",
    "tests.fixtures.cache",
]
