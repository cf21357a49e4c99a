"""
Pytest configuration and shared fixtures.

This module provides central pytest configuration, custom markers,
and shared fixtures for the multifork test suite.
"""

import shutil
import sys
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# =============================================================================
# Plugin Registration
# =============================================================================

pytest_plugins = [
    "tests.fixtures.logging",
    "tests.fixtures.workers",
]


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (signals, several components together)"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests (real forked processes)"
    )
    config.addinivalue_line("markers", "property: Property-based tests (hypothesis)")
    config.addinivalue_line("markers", "slow: Tests that take >1 second to run")
    config.addinivalue_line("markers", "posix: Tests that need POSIX fork and signals")


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Provide a temporary directory that is cleaned up after the test.

    Yields:
        Path: Temporary directory path
    """
    temp_path = Path(tempfile.mkdtemp(prefix="multifork-test-"))
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_config_dict() -> dict:
    """
    Provide a sample worker configuration dictionary.

    Returns:
        dict: Sample configuration
    """
    return {
        "worker": {
            "name": "mailer",
            "queue": "default",
        },
        "fork": {
            "jobs_per_fork": 25,
            "memory_threshold": "256MB",
            "reserve_timeout": "2s",
        },
        "logging": {
            "level": "debug",
            "colors": False,
        },
    }


# =============================================================================
# Test Collection Hooks
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to add markers and skip conditions.

    Args:
        config: Pytest config object
        items: List of collected test items
    """
    skip_posix = pytest.mark.skip(reason="requires POSIX fork and signals")
    for item in items:
        # Add 'unit' marker to tests without other markers
        if not any(
            mark.name in ["integration", "e2e"] for mark in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)
        if "posix" in item.keywords and sys.platform == "win32":
            item.add_marker(skip_posix)
