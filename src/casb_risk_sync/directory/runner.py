"""Run directory CLI commands."""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol

from ..errors import CommandError

logger = logging.getLogger(__name__)

# az prints deprecation notices on stderr without failing the command
DEPRECATION_MARKER = "deprecated"


class CommandRunner(Protocol):
    """Execute a command line and return its trimmed standard output."""

    def run(self, command: str, log_command: bool = True) -> str: ...


class ShellCommandRunner:
    """Run commands through the shell, the way an operator would type them."""

    def run(self, command: str, log_command: bool = True) -> str:
        """Run *command*; pass ``log_command=False`` when it carries credentials."""
        if log_command:
            logger.debug("Running: %s", command)
        result = subprocess.run(command, shell=True, capture_output=True, text=True)

        stderr = result.stderr.strip()
        deprecation_only = DEPRECATION_MARKER in stderr
        if stderr and not deprecation_only:
            raise CommandError(stderr, result.returncode)
        if result.returncode != 0 and not deprecation_only:
            raise CommandError(
                f"failed in executing the azure command (exit status {result.returncode})",
                result.returncode,
            )
        return result.stdout.strip()
