"""Rendering probe results as Prometheus metrics."""

from typing import Dict

from prometheus_client import CollectorRegistry, Gauge, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from .models import ProbeResult, Snapshot
from ..utils.formatters import join_paths, join_tags

SNAPSHOT_LABELS = ['hostname', 'paths', 'tags']


class ProbeMetrics:
    """The gauges for one probe, bound to their own registry."""

    def __init__(self):
        self.registry = CollectorRegistry()
        self.snapshot_time = Gauge(
            'latest_time', 'Time of the latest snapshot', SNAPSHOT_LABELS,
            namespace='restic', subsystem='snapshots', registry=self.registry,
        )
        self.total_nfiles = Gauge(
            'latest_total_nfiles', 'Number of files', SNAPSHOT_LABELS,
            namespace='restic', subsystem='stats', registry=self.registry,
        )
        self.total_size = Gauge(
            'latest_total_size', 'Total Size', SNAPSHOT_LABELS,
            namespace='restic', subsystem='stats', registry=self.registry,
        )
        self.lock_time = Gauge(
            'latest_time', 'Time of the latest lock',
            namespace='restic', subsystem='locks', registry=self.registry,
        )


def snapshot_labels(snapshot: Snapshot) -> Dict[str, str]:
    """Label values describing a snapshot."""
    return {
        'hostname': snapshot.hostname,
        'paths': join_paths(snapshot.paths),
        'tags': join_tags(snapshot.tags),
    }


class MetricRenderer:
    """Turns a ProbeResult into an exposition document."""

    content_type = CONTENT_TYPE_LATEST

    def populate(self, result: ProbeResult) -> ProbeMetrics:
        """Create fresh gauges and set them from a probe result.

        Only the first snapshot is used. No labelled series are set when
        the probe matched no snapshot.
        """
        metrics = ProbeMetrics()

        if result.locked:
            metrics.lock_time.set_to_current_time()

        latest = result.latest
        if latest is not None:
            labels = snapshot_labels(latest)
            metrics.total_size.labels(**labels).set(result.stats.total_size)
            metrics.total_nfiles.labels(**labels).set(result.stats.total_file_count)
            metrics.snapshot_time.labels(**labels).set(latest.unix_time)

        return metrics

    def render(self, result: ProbeResult) -> bytes:
        """Render a probe result in the Prometheus text format."""
        return generate_latest(self.populate(result).registry)
