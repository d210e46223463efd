"""External command execution with an explicit "unknown" result.

Provides run_command() - a thin wrapper around subprocess.run that never
raises. Every failure mode (missing binary, non-zero exit, OS error, timeout)
collapses into a failed CommandResult whose text is the UNKNOWN sentinel.

Usage:
    from gitid.command_runner import run_command

    result = run_command(["git", "config", "--global", "user.name"])
    if result.ok:
        print(result.text)
    else:
        print(result.text)  # "unknown"
"""

import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a single external command.

    Attributes:
        value: Trimmed stdout on success, None on failure
    """

    value: str | None

    @property
    def ok(self) -> bool:
        return self.value is not None

    @property
    def text(self) -> str:
        """Trimmed output, or UNKNOWN when the command failed or printed nothing."""
        return self.value or UNKNOWN

    @classmethod
    def failed(cls) -> "CommandResult":
        return cls(value=None)


# Signature shared by run_command and test doubles
CommandRunner = Callable[..., CommandResult]


def run_command(cmd: list[str], *, timeout: float | None = None) -> CommandResult:
    """Execute a command and capture its output.

    Args:
        cmd: Argument list, e.g. ["npm", "config", "get", "registry"]
        timeout: Seconds to wait before giving up (default: wait forever)

    Returns:
        CommandResult with trimmed stdout, or a failed result
    """
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=timeout)
    except subprocess.CalledProcessError as e:
        logger.debug(f"Command failed ({e.returncode}): {' '.join(cmd)}: {(e.stderr or '').strip()}")
        return CommandResult.failed()
    except subprocess.TimeoutExpired:
        logger.debug(f"Command timed out after {timeout}s: {' '.join(cmd)}")
        return CommandResult.failed()
    except OSError as e:
        logger.debug(f"Could not run {cmd[0]}: {e}")
        return CommandResult.failed()

    return CommandResult(value=(proc.stdout or "").strip())


__all__ = ["UNKNOWN", "CommandResult", "CommandRunner", "run_command"]
