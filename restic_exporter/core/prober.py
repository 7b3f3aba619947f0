"""Probing a restic repository through the restic command line."""

import json
import logging
import time
from typing import Any, Callable, List, Optional

from .errors import DecodeError, ExternalToolError, ProbeCancelled
from .models import ProbeParameters, ProbeResult, Snapshot, SnapshotStats
from .runner import CommandResult, CommandRunner, SubprocessRunner
from ..config.config_manager import ExporterConfig
from ..utils.formatters import format_command, truncate_string


class ResticProber:
    """Collects lock, stats and snapshot state for one set of filters.

    A prober holds only read-only configuration and a runner, so a single
    instance can serve concurrent requests.
    """

    def __init__(self, config: ExporterConfig, runner: Optional[CommandRunner] = None,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize prober.

        Args:
            config: Exporter configuration.
            runner: Command runner. Defaults to running real processes.
            clock: Monotonic clock used for the probe deadline.
        """
        self.config = config
        self.runner = runner or SubprocessRunner()
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def base_args(self) -> List[str]:
        """Arguments shared by every invocation."""
        return ['--cache-dir', self.config.cache_dir, '--json', '--no-lock']

    def filter_args(self, params: ProbeParameters) -> List[str]:
        """Base arguments plus host, path and tag filters."""
        args = self.base_args()
        if params.target:
            args += ['--host', params.target]
        if params.path:
            args += ['--path', params.path]
        for tag in params.tag_list:
            args += ['--tag', tag]
        return args

    def locks_command(self) -> List[str]:
        return [self.config.restic_binary, 'list', 'locks'] + self.base_args()

    def stats_command(self, params: ProbeParameters) -> List[str]:
        return [self.config.restic_binary, 'stats', 'latest'] + self.filter_args(params)

    def snapshots_command(self, params: ProbeParameters) -> List[str]:
        return [self.config.restic_binary, 'snapshots', 'latest'] + self.filter_args(params)

    def probe(self, params: ProbeParameters) -> ProbeResult:
        """Run the lock, stats and snapshot invocations in order.

        Args:
            params: Validated probe filters.

        Returns:
            ProbeResult for the latest matching snapshot.

        Raises:
            ExternalToolError: If any invocation fails.
            DecodeError: If stats or snapshot output cannot be decoded.
            ProbeCancelled: If the probe runs past its deadline.
        """
        deadline = self.clock() + self.config.probe_timeout_seconds

        locks = self._run(self.locks_command(), deadline)
        locked = len(locks.stdout) > 0

        stats_result = self._run(self.stats_command(params), deadline)
        stats = self._decode(stats_result, 'snapshot stats object', SnapshotStats.from_dict)

        snapshots_result = self._run(self.snapshots_command(params), deadline)
        snapshots = self._decode(snapshots_result, 'list of snapshot objects', _decode_snapshots)

        self.logger.debug(
            f"Probe {params} found {len(snapshots)} snapshot(s), locked={locked}"
        )
        return ProbeResult(stats=stats, snapshots=snapshots, locked=locked)

    def _run(self, argv: List[str], deadline: float) -> CommandResult:
        remaining = deadline - self.clock()
        if remaining <= 0:
            self.logger.error(f"Probe deadline passed before running '{format_command(argv)}'")
            raise ProbeCancelled(f"deadline passed before '{format_command(argv)}'")

        try:
            result = self.runner.run(argv, timeout=remaining)
        except ProbeCancelled as e:
            self.logger.error(f"Probe cancelled: {e}")
            raise
        except ExternalToolError as e:
            self.logger.error(f"Could not run '{format_command(argv)}': {e.stderr}")
            raise

        if result.returncode != 0:
            stderr = result.stderr_text
            self.logger.error(
                f"Error occurred while running '{format_command(argv)}' "
                f"(exit {result.returncode}): {truncate_string(stderr.strip(), 2000)}"
            )
            raise ExternalToolError(argv, result.returncode, stderr)

        return result

    def _decode(self, result: CommandResult, expected: str, build: Callable[[Any], Any]):
        command = ' '.join(result.argv[1:3])
        try:
            return build(json.loads(result.stdout))
        except (ValueError, TypeError) as e:
            # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
            self.logger.error(
                f"Unexpected output from '{command}', expected {expected}: {e} "
                f"(restic version mismatch?)"
            )
            raise DecodeError(command, expected, str(e))


def _decode_snapshots(data: Any) -> List[Snapshot]:
    if not isinstance(data, list):
        raise ValueError(f"expected a list, got {type(data).__name__}")
    return [Snapshot.from_dict(item) for item in data]
