"""Monitoring package.

Exposes pipeline health and clustering activity as Prometheus metrics.
"""

from .metrics import MetricsExporter

__all__ = ["MetricsExporter"]
