"""Shared test fixtures."""

import subprocess
import sys
import tempfile
from pathlib import Path

import pytest
import structlog

from servitor.config import DaemonConfig
from servitor.lifecycle import SignalBrokers


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo structlog configuration made by a test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def config():
    """Test configuration with a short sleep granularity."""
    return DaemonConfig(log_level="INFO", sleep=0.0, pid_file=None, tick=0.01)


@pytest.fixture
def brokers():
    """Signal broker registry, closed (dispositions restored) after the test."""
    registry = SignalBrokers()
    yield registry
    registry.close()


@pytest.fixture
def keep_cwd(monkeypatch):
    """Restore the working directory after daemons chdir to /."""
    monkeypatch.chdir(Path.cwd())


@pytest.fixture
def live_foreign_pid():
    """PID of a live process other than the test runner."""
    proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    yield proc.pid
    proc.kill()
    proc.wait()
