"""Profile store for git identity profiles.

This module keeps the ordered list of (name, email, registry) profiles and
persists it through an injected state backend.

Invariants:
- (name, email) is unique within the store
- At most MAX_PROFILES entries, most recently used first
- Every mutation writes the whole list back

State File Format:
- TOML format for consistency with config.toml
- Stored at ~/.gitid/state.toml (owner read/write only)
- One array of tables under STORAGE_KEY, each with name, email and an
  optional registry

Failure model:
- Missing or malformed state loads as an empty list
- Failed writes are logged and skipped, never raised to callers
"""

import logging
import os
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

try:
    import tomli  # type: ignore[import]
    import tomli_w
except ImportError:
    try:
        import tomllib as tomli  # type: ignore[import]

        import tomli_w
    except ImportError as e:
        raise ImportError(
            "toml library not available. Install with: pip install tomli tomli-w"
        ) from e

logger = logging.getLogger(__name__)

STORAGE_KEY = "git_users"
MAX_PROFILES = 10


class StateError(Exception):
    """Raised when the state backend cannot read or write."""

    pass


@dataclass(frozen=True)
class Profile:
    """Stored identity.

    Attributes:
        name: git user.name
        email: git user.email
        registry: npm registry URL or nrm alias (None if not recorded)
    """

    name: str
    email: str
    registry: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.email)

    def matches(self, name: str, email: str) -> bool:
        return self.name == name and self.email == email

    def to_dict(self) -> dict[str, str]:
        data = {"name": self.name, "email": self.email}
        if self.registry:
            data["registry"] = self.registry
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Profile":
        """Build a profile from a persisted record.

        Raises:
            ValueError: If the record is not a table with string name and email
        """
        if not isinstance(data, dict):
            raise ValueError(f"profile record must be a table, got {type(data).__name__}")

        name = data.get("name")
        email = data.get("email")
        if not isinstance(name, str) or not isinstance(email, str):
            raise ValueError("profile record missing string 'name' or 'email'")

        registry = data.get("registry")
        if not isinstance(registry, str) or not registry:
            registry = None

        return cls(name=name, email=email, registry=registry)


class StateBackend(Protocol):
    """Key-value persistence that survives process restarts."""

    def get(self, key: str) -> Any: ...

    def update(self, key: str, value: Any) -> None: ...


class MemoryState:
    """In-process state backend (nothing survives the process)."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self.data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return self.data.get(key)

    def update(self, key: str, value: Any) -> None:
        self.data[key] = value


class TomlStateFile:
    """State backend stored as a single TOML document.

    The file is created lazily on first write with 0600 permissions and
    replaced atomically on every update.
    """

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "rb") as f:
                return tomli.load(f)  # type: ignore[attr-defined]
        except (OSError, tomli.TOMLDecodeError) as e:  # type: ignore[attr-defined]
            raise StateError(f"Failed to read state file {self.path}: {e}") from e

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def update(self, key: str, value: Any) -> None:
        """Write one key, keeping the rest of the document.

        Raises:
            StateError: If the file cannot be written
        """
        try:
            data = self._read()
        except StateError as e:
            # A corrupt file is overwritten rather than blocking every save
            logger.warning(f"{e}. Rewriting state file.")
            data = {}
        data[key] = value

        temp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "wb") as f:
                tomli_w.dump(data, f)
            os.chmod(temp_path, 0o600)
            temp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StateError(f"Failed to write state file {self.path}: {e}") from e

        logger.debug(f"Saved state to: {self.path}")


class ProfileStore:
    """Ordered, deduplicated, capacity-bounded list of profiles.

    Examples:
        >>> store = ProfileStore.init(MemoryState())
        >>> profiles, inserted = store.upsert("Alice", "alice@x.com")
        >>> inserted
        True
        >>> store.exists("Alice", "alice@x.com")
        True
    """

    def __init__(self, backend: StateBackend | None = None):
        """Initialize ProfileStore without loading.

        Args:
            backend: Persistence backend (None disables persistence)
        """
        self.backend = backend
        self._profiles: list[Profile] = []
        self._lock = threading.RLock()

    @classmethod
    def init(cls, backend: StateBackend | None) -> "ProfileStore":
        """Create a store and restore its list from the backend."""
        store = cls(backend)
        store.load()
        return store

    @property
    def profiles(self) -> list[Profile]:
        with self._lock:
            return list(self._profiles)

    def load(self) -> list[Profile]:
        """Restore the list from the backend.

        Returns:
            Persisted profiles, or an empty list if state is absent or malformed
        """
        with self._lock:
            self._profiles = self._read_persisted()
            return list(self._profiles)

    def _read_persisted(self) -> list[Profile]:
        if self.backend is None:
            return []

        try:
            stored = self.backend.get(STORAGE_KEY)
        except StateError as e:
            logger.warning(f"Ignoring unreadable profile state: {e}")
            return []

        if not isinstance(stored, list) or not stored:
            return []

        try:
            profiles = [Profile.from_dict(item) for item in stored]
        except ValueError as e:
            logger.warning(f"Ignoring malformed profile state: {e}")
            return []

        # First entry per (name, email) wins; it is the most recently used
        unique: dict[tuple[str, str], Profile] = {}
        for profile in profiles:
            unique.setdefault(profile.key, profile)
        if len(unique) < len(profiles):
            logger.debug(f"Dropped {len(profiles) - len(unique)} duplicate stored profiles")
        profiles = list(unique.values())

        if len(profiles) > MAX_PROFILES:
            logger.debug(f"Truncating {len(profiles)} stored profiles to {MAX_PROFILES}")
        return profiles[:MAX_PROFILES]

    def save(self, profiles: Iterable[Profile] | None = None) -> None:
        """Persist the full list (best effort).

        Args:
            profiles: List to store; defaults to the current in-memory list
        """
        with self._lock:
            if profiles is not None:
                self._profiles = list(profiles)

            if self.backend is None:
                logger.debug("No state backend, skipping save")
                return

            try:
                self.backend.update(STORAGE_KEY, [p.to_dict() for p in self._profiles])
            except StateError as e:
                logger.warning(f"Profile list not saved: {e}")

    def upsert(
        self, name: str, email: str, registry: str | None = None
    ) -> tuple[list[Profile], bool]:
        """Insert a profile at the front unless (name, email) is already stored.

        An existing entry is left untouched, including its registry.

        Returns:
            Tuple of (current list, inserted)
        """
        with self._lock:
            if self.find(name, email) is not None:
                return list(self._profiles), False

            profile = Profile(name=name, email=email, registry=registry or None)
            self._profiles = [profile, *self._profiles][:MAX_PROFILES]
            self.save()
            logger.debug(f"Stored profile {name} <{email}>")
            return list(self._profiles), True

    def remove(self, name: str, email: str) -> list[Profile]:
        """Drop the exact (name, email) entry; no-op if absent."""
        with self._lock:
            self._profiles = [p for p in self._profiles if not p.matches(name, email)]
            self.save()
            return list(self._profiles)

    def find(self, name: str, email: str) -> Profile | None:
        with self._lock:
            for profile in self._profiles:
                if profile.matches(name, email):
                    return profile
            return None

    def exists(self, name: str, email: str) -> bool:
        return self.find(name, email) is not None


__all__ = [
    "MAX_PROFILES",
    "STORAGE_KEY",
    "MemoryState",
    "Profile",
    "ProfileStore",
    "StateBackend",
    "StateError",
    "TomlStateFile",
]
