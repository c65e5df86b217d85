"""Pytest configuration and fixtures for rebasecat tests."""

import sys
import tempfile
from pathlib import Path

import pytest
from fakes import FakeRepository, FakeResolver, FakeVerifier

from rebasecat.core.log import ConsoleSink, setup_logger


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only logging at debug level, nothing sent anywhere."""
    test_log_root = Path(tempfile.gettempdir()) / "rebasecat-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture(scope="session")
def test_config():
    """Configuration loaded from the packaged defaults.

    sys.argv is swapped out so pydantic-settings does not try to
    parse pytest's own arguments.
    """
    from rebasecat.core.config import State

    old_argv = sys.argv
    sys.argv = ['rebasecat']

    try:
        state = State()
        return state.config
    finally:
        sys.argv = old_argv


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def resolver(repository):
    return FakeResolver(repository)


@pytest.fixture
def verifier():
    return FakeVerifier()
