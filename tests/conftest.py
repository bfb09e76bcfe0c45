"""
Shared pytest fixtures for cadence tests.

This module provides common fixtures used across all test files, including:
- Time freezing utilities
- An isolated workspace home
- Database and controller fixtures
"""

import pytest
from freezegun import freeze_time

from cadence.cadence_env import CadenceEnvironment
from cadence.controller import Controller
from cadence import shared


@pytest.fixture
def frozen_time():
    """
    Provides a freezegun context that freezes time to a default datetime.

    Time is automatically frozen to 2025-01-15 12:00:00 for the duration of the test.
    """
    with freeze_time("2025-01-15 12:00:00") as frozen:
        yield frozen


@pytest.fixture
def freeze_at():
    """
    Returns a function that freezes time to a specific datetime.

    Usage:
        def test_something(freeze_at):
            with freeze_at("2025-01-15 10:00:00"):
                now = datetime.now()
    """
    return freeze_time


@pytest.fixture
def cadence_home(tmp_path, monkeypatch):
    """
    Points $CADENCE_HOME at a fresh directory so that config files, the
    database and logs never touch the real workspace.
    """
    home = tmp_path / "cadence-home"
    monkeypatch.setenv("CADENCE_HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    shared.set_runtime_home(None)
    yield home
    shared.set_runtime_home(None)


@pytest.fixture
def test_env(cadence_home):
    """
    Provides a CadenceEnvironment configured for testing.
    """
    env = CadenceEnvironment()
    env.ensure(init_config=True)
    return env


@pytest.fixture
def temp_db_path(tmp_path):
    """
    Provides a temporary database path that will be cleaned up after the test.
    """
    return tmp_path / "test_cadence.db"


@pytest.fixture
def test_controller(temp_db_path, test_env):
    """
    Provides a Controller with a fresh test database.
    """
    ctrl = Controller(str(temp_db_path), test_env, reset=True)
    yield ctrl
    ctrl.close()

