"""
Restic Exporter - Prometheus metrics for restic backup repositories.

This package runs restic on each scrape, collecting lock presence and the
statistics and metadata of the latest snapshot matching the request filters.
"""

__version__ = "1.0.0"

from .core.prober import ResticProber
from .core.renderer import MetricRenderer
from .server import ExporterApp

__all__ = ["ResticProber", "MetricRenderer", "ExporterApp"]
