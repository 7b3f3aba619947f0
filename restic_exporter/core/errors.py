"""Exceptions raised while probing a restic repository."""

from typing import List


class ProbeError(Exception):
    """Base class for all probe failures."""


class MissingParameter(ProbeError):
    """Raised when a probe request names no target, tags or path."""

    def __init__(self, message: str = "at least one of target, tags or path is required"):
        super().__init__(message)


class ExternalToolError(ProbeError):
    """Raised when a restic invocation cannot be run or exits non-zero."""

    def __init__(self, argv: List[str], returncode: int, stderr: str):
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"command exited with status {returncode}: {stderr.strip()}")


class DecodeError(ProbeError):
    """Raised when restic output does not match the expected JSON shape."""

    def __init__(self, command: str, expected: str, detail: str):
        self.command = command
        self.expected = expected
        self.detail = detail
        super().__init__(f"could not decode output of '{command}' as {expected}: {detail}")


class ProbeCancelled(ProbeError):
    """Raised when a probe runs past its deadline."""
