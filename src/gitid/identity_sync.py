"""Identity synchronizer.

Bridges what git and npm currently report with what the profile store
holds, and applies a chosen profile to both.

Commands used:
    git config --global user.name [value]
    git config --global user.email [value]
    npm config get registry
    npm config set registry <url>      (registry is an http(s) URL)
    nrm use <alias>                    (anything else)

Applying is best effort: there is no rollback and no verification, so a
partially failed apply still records the profile.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from gitid.command_runner import UNKNOWN, CommandRunner, run_command
from gitid.config_manager import GitidConfig
from gitid.profile_store import Profile, ProfileStore

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^https?://.+")


class RegistryKind(str, Enum):
    """How a registry value is applied."""

    URL = "url"
    ALIAS = "alias"


def classify_registry(value: str) -> RegistryKind:
    """Classify a registry value by prefix.

    Only http:// and https:// count as URLs. Other schemes and local paths
    are handed to nrm as alias names.
    """
    if URL_PATTERN.match(value):
        return RegistryKind.URL
    return RegistryKind.ALIAS


@dataclass(frozen=True)
class ActiveState:
    """Live identity and registry as reported by git and npm."""

    name: str = UNKNOWN
    email: str = UNKNOWN
    registry: str = UNKNOWN


@dataclass(frozen=True)
class StatusSummary:
    """Compact current-state line."""

    name: str
    registry: str

    @property
    def text(self) -> str:
        return f"{self.name} | {self.registry}"


def is_current(profile: Profile, active: ActiveState) -> bool:
    """True when the profile's name and email match the live git identity.

    The registry is not part of the comparison.
    """
    return profile.name == active.name and profile.email == active.email


class IdentitySynchronizer:
    """Query and apply git identity and npm registry.

    Args:
        store: Profile store updated on apply
        config: Tool binaries and timeout (default: GitidConfig())
        runner: Command runner (default: run_command)
    """

    def __init__(
        self,
        store: ProfileStore,
        config: GitidConfig | None = None,
        runner: CommandRunner | None = None,
    ):
        self.store = store
        self.config = config or GitidConfig()
        self.runner = runner or run_command

    def _run(self, cmd: list[str]) -> str:
        result = self.runner(cmd, timeout=self.config.command_timeout)
        return result.text

    def _git_config(self, key: str, value: str | None = None) -> str:
        cmd = [self.config.git_command, "config", "--global", key]
        if value is not None:
            cmd.append(value)
        return self._run(cmd)

    def query_active(self) -> ActiveState:
        """Read the live git identity and npm registry.

        Each value is resolved independently; failures read as UNKNOWN.
        """
        name = self._git_config("user.name")
        email = self._git_config("user.email")
        registry = self._run([self.config.npm_command, "config", "get", "registry"])
        active = ActiveState(name=name, email=email, registry=registry)
        logger.debug(f"Active identity: {active}")
        return active

    def is_current(self, profile: Profile, active: ActiveState) -> bool:
        return is_current(profile, active)

    def set_registry(self, registry: str) -> None:
        """Point npm at a registry URL or switch nrm to an alias."""
        if classify_registry(registry) is RegistryKind.URL:
            self._run([self.config.npm_command, "config", "set", "registry", registry])
        else:
            self._run([self.config.nrm_command, "use", registry])

    def apply(self, name: str, email: str, registry: str | None = None) -> None:
        """Apply an identity to git (and npm when a registry is given) and record it.

        Name is set before email. Both are attempted whatever the outcome of
        the other, and the profile is stored regardless.
        """
        self._git_config("user.name", name)
        self._git_config("user.email", email)

        if registry:
            self.set_registry(registry)

        _, inserted = self.store.upsert(name, email, registry or None)
        logger.debug(f"Applied identity {name} <{email}>" + (" (new profile)" if inserted else ""))

    def effective_registry(self, active: ActiveState) -> str:
        """Registry to display for the active identity.

        Prefers the registry recorded on the matching stored profile, then
        falls back to the live npm value.
        """
        stored = self.store.find(active.name, active.email)
        if stored is not None and stored.registry:
            return stored.registry
        return active.registry

    def status_summary(self, active: ActiveState | None = None) -> StatusSummary:
        if active is None:
            active = self.query_active()
        return StatusSummary(name=active.name, registry=self.effective_registry(active))


__all__ = [
    "ActiveState",
    "IdentitySynchronizer",
    "RegistryKind",
    "StatusSummary",
    "classify_registry",
    "is_current",
]
