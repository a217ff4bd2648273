"""Pytest configuration and fixtures for orgcheck tests."""

import sys
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from orgcheck.core.log import ConsoleSink, setup_logger


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Configure logging for console-only mode during tests.

    This enables debug output during test runs without sending
    anything to logfire.dev.
    """
    test_log_root = Path(tempfile.gettempdir()) / "orgcheck-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def make_state(monkeypatch, tmp_path):
    """Build a State without CLI parsing conflicts.

    sys.argv is replaced so pydantic-settings does not see pytest's
    arguments, and the working directory is moved to an empty temp dir
    so a stray ./orgcheck.yaml cannot leak into the test.
    """
    from orgcheck.core.config import State

    def _make(**kwargs):
        monkeypatch.setattr(sys, "argv", ["orgcheck"])
        monkeypatch.chdir(tmp_path)
        return State(**kwargs)

    return _make


@pytest.fixture
def org_file(tmp_path):
    """Write an org file and return its path."""
    def _write(text: str, name: str = "work.org") -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(text.encode("utf-8"))
        return path

    return _write


@pytest.fixture
def now():
    """Fixed reference time for running clocks."""
    return datetime(2024, 3, 5, 18, 0)
