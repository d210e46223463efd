"""Shared fixtures for gitid unit tests.

Provides an in-memory stand-in for git, npm and nrm so the synchronizer can
be exercised end to end without touching the real global configuration.
"""

import pytest

from gitid.command_runner import CommandResult
from gitid.identity_sync import IdentitySynchronizer
from gitid.profile_store import MemoryState, ProfileStore

NRM_REGISTRIES = {
    "npm": "https://registry.npmjs.org/",
    "taobao": "https://registry.npmmirror.com/",
}


class FakeTools:
    """Command runner that emulates `git config --global`, npm config and nrm.

    Attributes:
        git: Global git config values (user.name, user.email)
        registry: Current npm registry
        calls: Every argv received, in order
        failing: Binaries that fail every call (e.g. {"nrm"})
    """

    def __init__(self, name=None, email=None, registry="https://registry.npmjs.org/"):
        self.git: dict[str, str] = {}
        if name is not None:
            self.git["user.name"] = name
        if email is not None:
            self.git["user.email"] = email
        self.registry = registry
        self.calls: list[list[str]] = []
        self.failing: set[str] = set()

    def __call__(self, cmd, *, timeout=None):
        self.calls.append(list(cmd))
        tool = cmd[0]
        if tool in self.failing:
            return CommandResult.failed()

        if cmd[:3] == ["git", "config", "--global"]:
            key = cmd[3]
            if len(cmd) == 5:
                self.git[key] = cmd[4]
                return CommandResult(value="")
            if key not in self.git:
                # git exits 1 for an unset key
                return CommandResult.failed()
            return CommandResult(value=self.git[key])

        if cmd == ["npm", "config", "get", "registry"]:
            return CommandResult(value=self.registry)
        if cmd[:4] == ["npm", "config", "set", "registry"]:
            self.registry = cmd[4]
            return CommandResult(value="")

        if cmd[:2] == ["nrm", "use"]:
            if cmd[2] not in NRM_REGISTRIES:
                return CommandResult.failed()
            self.registry = NRM_REGISTRIES[cmd[2]]
            return CommandResult(value=f"Registry has been set to: {self.registry}")

        return CommandResult.failed()


@pytest.fixture
def tools():
    """Fake tools with no git identity configured."""
    return FakeTools()


@pytest.fixture
def memory_state():
    return MemoryState()


@pytest.fixture
def store(memory_state):
    return ProfileStore.init(memory_state)


@pytest.fixture
def sync(store, tools):
    return IdentitySynchronizer(store, runner=tools)


@pytest.fixture
def make_tools():
    """Factory for FakeTools with a preset identity."""
    return FakeTools
