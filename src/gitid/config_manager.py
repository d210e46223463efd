"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores which tool binaries to invoke, an optional command timeout, and an
optional override for the profile state file.

Security:
- Config file permissions: 0600 (owner read/write only)
- Config directory permissions: 0700
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Standard library on Python 3.11+
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

try:
    import tomlkit
except ImportError as e:
    raise ImportError("tomlkit library not available. Install with: pip install tomlkit") from e

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "GITID_HOME"


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


@dataclass
class GitidConfig:
    """gitid configuration data."""

    git_command: str = "git"
    npm_command: str = "npm"
    nrm_command: str = "nrm"
    command_timeout: float | None = None  # None waits for the tool indefinitely
    state_file: str | None = None  # Defaults to <config dir>/state.toml

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # TOML has no null
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GitidConfig":
        """Create from dictionary, validating value types.

        Raises:
            ConfigError: If a known key has a value of the wrong type
        """
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning(f"Unknown config key: {key}")

        config = cls(
            git_command=data.get("git_command", "git"),
            npm_command=data.get("npm_command", "npm"),
            nrm_command=data.get("nrm_command", "nrm"),
            command_timeout=data.get("command_timeout"),
            state_file=data.get("state_file"),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Check field values.

        Raises:
            ConfigError: If any value is invalid
        """
        for name in ("git_command", "npm_command", "nrm_command"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"Invalid {name}: must be a non-empty string")

        timeout = self.command_timeout
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0:
                raise ConfigError(f"Invalid command_timeout: {timeout!r} (must be a positive number)")

        if self.state_file is not None and not isinstance(self.state_file, str):
            raise ConfigError(f"Invalid state_file: {self.state_file!r}")


class ConfigManager:
    """Manage gitid configuration file.

    Configuration is stored at ~/.gitid/config.toml with secure permissions.
    Set GITID_HOME to relocate the whole directory.
    """

    CONFIG_FILE_NAME = "config.toml"
    STATE_FILE_NAME = "state.toml"

    @classmethod
    def get_config_dir(cls) -> Path:
        """Get configuration directory (GITID_HOME or ~/.gitid)."""
        override = os.environ.get(HOME_ENV_VAR)
        if override:
            return Path(override).expanduser()
        return Path.home() / ".gitid"

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            Path to config file

        Raises:
            ConfigError: If a custom path was given and does not exist
        """
        if custom_path:
            path = Path(custom_path).expanduser().resolve()
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            return path

        return cls.get_config_dir() / cls.CONFIG_FILE_NAME

    @classmethod
    def ensure_config_dir(cls) -> Path:
        """Ensure config directory exists with secure permissions.

        Returns:
            Path to config directory

        Raises:
            ConfigError: If directory creation fails
        """
        config_dir = cls.get_config_dir()
        try:
            config_dir.mkdir(parents=True, exist_ok=True)

            # Set secure permissions (owner only: rwx------)
            os.chmod(config_dir, 0o700)

            logger.debug(f"Config directory ready: {config_dir}")
            return config_dir

        except OSError as e:
            raise ConfigError(f"Failed to create config directory: {e}") from e

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> GitidConfig:
        """Load configuration from file.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            GitidConfig object (defaults if the file does not exist)

        Raises:
            ConfigError: If loading fails
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return GitidConfig()

        try:
            with open(config_path, "rb") as f:
                data = tomli.load(f)  # type: ignore[attr-defined]
        except (OSError, tomli.TOMLDecodeError) as e:  # type: ignore[attr-defined]
            raise ConfigError(f"Failed to load config: {e}") from e

        logger.debug(f"Loaded config from: {config_path}")
        return GitidConfig.from_dict(data)

    @classmethod
    def save_config(cls, config: GitidConfig, custom_path: str | None = None) -> None:
        """Save configuration to file.

        Args:
            config: Configuration to save
            custom_path: Custom config file path (optional)

        Raises:
            ConfigError: If saving fails
        """
        config.validate()

        temp_path: Path | None = None
        try:
            if custom_path:
                config_path = Path(custom_path).expanduser().resolve()
                config_path.parent.mkdir(parents=True, exist_ok=True)
            else:
                config_path = cls.ensure_config_dir() / cls.CONFIG_FILE_NAME

            # Use tomlkit to preserve comments and formatting
            temp_path = config_path.with_suffix(".tmp")

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            config_dict = config.to_dict()
            for key in [k for k in doc if k not in config_dict]:
                # Values reset to None are dropped from the file
                del doc[key]
            for key, value in config_dict.items():
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)

            # Atomic rename
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")

        except Exception as e:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def update_config(cls, custom_path: str | None = None, **updates: Any) -> GitidConfig:
        """Update configuration values.

        Args:
            custom_path: Custom config file path (optional)
            **updates: Configuration values to update

        Returns:
            Updated GitidConfig

        Raises:
            ConfigError: If update fails
        """
        config = cls.load_config(custom_path)

        for key, value in updates.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning(f"Unknown config key: {key}")

        cls.save_config(config, custom_path)

        return config

    @classmethod
    def state_path(cls, config: GitidConfig) -> Path:
        """Resolve the profile state file for a configuration."""
        if config.state_file:
            return Path(config.state_file).expanduser()
        return cls.get_config_dir() / cls.STATE_FILE_NAME


__all__ = ["HOME_ENV_VAR", "ConfigError", "ConfigManager", "GitidConfig"]
