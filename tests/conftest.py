"""
Pytest configuration and shared fixtures for the zatserver test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the zatserver project.
"""

import asyncio
import shutil
import sys
import tempfile
import time
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def fixture_dir(temp_dir):
    """A target directory holding a `{}` manifest, as produced by a build."""
    target = temp_dir / "fixtureDir"
    target.mkdir()
    (target / "manifest.json").write_text("{}")
    return target


@pytest.fixture
def sleeper_command():
    """A worker command that stays alive until it is signalled."""
    return [sys.executable, "-c", "import time; time.sleep(60)"]


@pytest.fixture
def sample_config_data():
    """Sample supervisor configuration for testing."""
    return {
        "supervisor": {
            "command": ["zat", "server"],
            "stop_timeout": 2.5,
            "log_level": "debug",
        },
        "targets": [
            {"name": "app", "options": {"path": "apps/app", "port": 4567}},
            {"name": "admin", "options": {"path": "apps/admin", "logLevel": "debug", "verbose": ""}},
        ],
    }


# ============================================================================
# Exit Coordination Fixtures
# ============================================================================


@pytest.fixture
def registry():
    """An isolated registry of running workers."""
    from zatserver.orchestration import InstanceRegistry

    return InstanceRegistry()


@pytest.fixture
def exit_recorder():
    """Spy standing in for host process termination."""
    return Mock()


@pytest.fixture
def exit_channel(exit_recorder):
    """Exit channel that records termination requests instead of exiting."""
    from zatserver.orchestration import HostExitChannel

    return HostExitChannel(action=exit_recorder)


@pytest.fixture
def make_coordinator(temp_dir, sleeper_command, registry, exit_channel):
    """
    Factory for coordinators that run a sleeper worker under `temp_dir`.

    Unless `observe_filesystem` is set, watchers get inert observers so that
    only explicitly dispatched events reach the coordinator. Workers still
    running when the test ends are killed.
    """
    from zatserver.orchestration import LifecycleCoordinator

    created = []

    def factory(options=None, observe_filesystem=False, **kwargs):
        kwargs.setdefault("cwd", temp_dir)
        kwargs.setdefault("command", sleeper_command)
        kwargs.setdefault("registry", registry)
        kwargs.setdefault("exit_channel", exit_channel)
        kwargs.setdefault("stop_timeout", 2.0)
        coordinator = LifecycleCoordinator(options, **kwargs)
        if not observe_filesystem:
            coordinator.dependencies.observer_factory = Mock
        created.append(coordinator)
        return coordinator

    yield factory

    for coordinator in created:
        coordinator.dependencies.close_all()
        coordinator.supervisor.kill()


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def config_file(temp_dir, sample_config_data):
    """Write the sample configuration to a supervisor.toml file."""
    import toml

    path = temp_dir / "supervisor.toml"
    with open(path, "w") as f:
        toml.dump(sample_config_data, f)
    return path


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    yield  # Run the test

    from zatserver.config import clear_config_cache, set_config_path

    clear_config_cache()
    set_config_path(None)


# ============================================================================
# Test Utilities
# ============================================================================


class TestUtils:
    """Utility functions for testing."""

    @staticmethod
    async def wait_until(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
        """Poll `predicate` on the running loop until it holds or `timeout` elapses."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            await asyncio.sleep(interval)
        return predicate()


@pytest.fixture
def test_utils():
    """Provide test utility functions."""
    return TestUtils
