"""Core probing functionality."""

from .errors import ProbeError, MissingParameter, ExternalToolError, DecodeError, ProbeCancelled
from .models import ProbeParameters, SnapshotStats, Snapshot, ProbeResult
from .runner import CommandRunner, CommandResult, SubprocessRunner
from .prober import ResticProber
from .renderer import MetricRenderer

__all__ = [
    "ProbeError", "MissingParameter", "ExternalToolError", "DecodeError", "ProbeCancelled",
    "ProbeParameters", "SnapshotStats", "Snapshot", "ProbeResult",
    "CommandRunner", "CommandResult", "SubprocessRunner",
    "ResticProber", "MetricRenderer",
]
