"""Pytest configuration and fixtures for gitid tests.

CRITICAL: Protects the user's real ~/.gitid files and global git config
from test modifications.
"""

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_gitid_home(tmp_path, monkeypatch):
    """Point GITID_HOME at a temporary directory for every test.

    ConfigManager and the default state file both resolve under GITID_HOME,
    so no test can read or write ~/.gitid/config.toml or state.toml.
    """
    home = tmp_path / ".gitid"
    monkeypatch.setenv("GITID_HOME", str(home))
    return home


@pytest.fixture(scope="session", autouse=True)
def prevent_real_tool_calls():
    """Mark test mode so accidental real git/npm calls are easy to spot.

    Tests must replace the command runner; nothing here should ever change
    the developer's global git identity.
    """
    os.environ["GITID_TEST_MODE"] = "true"

    yield

    if "GITID_TEST_MODE" in os.environ:
        del os.environ["GITID_TEST_MODE"]


@pytest.fixture
def state_file(isolated_gitid_home) -> Path:
    """Path of the profile state file inside the isolated home."""
    return isolated_gitid_home / "state.toml"
