"""Running external commands for probes."""

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from .errors import ExternalToolError, ProbeCancelled
from ..utils.formatters import format_command


@dataclass
class CommandResult:
    """Captured outcome of one command."""
    argv: List[str]
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode('utf-8', errors='replace')


class CommandRunner:
    """Runs a command to completion and captures its output."""

    def run(self, argv: List[str], timeout: Optional[float] = None) -> CommandResult:
        """Run a command.

        Args:
            argv: Program and arguments.
            timeout: Seconds the command may run before it is killed.

        Returns:
            CommandResult with separately captured stdout and stderr.

        Raises:
            ProbeCancelled: If the command ran past its timeout.
            ExternalToolError: If the command could not be started.
        """
        raise NotImplementedError


class SubprocessRunner(CommandRunner):
    """CommandRunner backed by subprocess.run."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def run(self, argv: List[str], timeout: Optional[float] = None) -> CommandResult:
        self.logger.debug(f"Running: {format_command(argv)}")
        try:
            # subprocess.run kills the child before re-raising TimeoutExpired
            completed = subprocess.run(argv, capture_output=True, timeout=timeout)
        except subprocess.TimeoutExpired:
            raise ProbeCancelled(f"'{format_command(argv)}' did not finish within {timeout:.1f}s")
        except OSError as e:
            raise ExternalToolError(argv, -1, str(e))

        return CommandResult(
            argv=argv,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
