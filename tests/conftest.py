"""Shared pytest fixtures for restic exporter tests."""

import json
import sys
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from restic_exporter.config.config_manager import ExporterConfig
from restic_exporter.core.runner import CommandResult, CommandRunner

STATS = {"total_size": 1073741824, "total_file_count": 4321}

SNAPSHOT = {
    "time": "2024-05-01T02:00:03.123456789+00:00",
    "parent": "b1a2c3d4",
    "tree": "e5f6a7b8",
    "paths": ["/etc", "/home"],
    "tags": ["daily", "system"],
    "hostname": "backup-host",
    "username": "root",
    "id": "0123456789abcdef0123456789abcdef",
    "short_id": "01234567",
}

SNAPSHOT_UNIX_TIME = 1714528803


def ok(stdout=b"", stderr=b"") -> Tuple[int, bytes, bytes]:
    if not isinstance(stdout, bytes):
        stdout = json.dumps(stdout).encode("utf-8")
    return 0, stdout, stderr


def failed(stderr=b"Fatal: unable to open repository", returncode=1) -> Tuple[int, bytes, bytes]:
    return returncode, b"", stderr


class FakeRunner(CommandRunner):
    """CommandRunner returning canned output keyed by restic subcommand."""

    def __init__(self, outputs: Optional[Dict[str, Tuple[int, bytes, bytes]]] = None,
                 handler: Optional[Callable[[List[str]], Tuple[int, bytes, bytes]]] = None):
        self.outputs = outputs or {}
        self.handler = handler
        self.calls: List[List[str]] = []
        self.timeouts: List[Optional[float]] = []
        self._lock = threading.Lock()

    def run(self, argv, timeout=None):
        with self._lock:
            self.calls.append(list(argv))
            self.timeouts.append(timeout)
        if self.handler is not None:
            returncode, stdout, stderr = self.handler(argv)
        else:
            returncode, stdout, stderr = self.outputs[" ".join(argv[1:3])]
        return CommandResult(argv=list(argv), returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture()
def config() -> ExporterConfig:
    return ExporterConfig(
        restic_binary="/usr/bin/restic",
        cache_dir="/var/cache/restic",
        address="127.0.0.1",
        port=9998,
        probe_timeout_seconds=30,
    )


@pytest.fixture()
def healthy_outputs() -> Dict[str, Tuple[int, bytes, bytes]]:
    return {
        "list locks": ok(b""),
        "stats latest": ok(STATS),
        "snapshots latest": ok([SNAPSHOT]),
    }


@pytest.fixture()
def fake_runner(healthy_outputs) -> FakeRunner:
    return FakeRunner(healthy_outputs)
