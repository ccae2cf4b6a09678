"""Polling monitor, tick snapshots and KPIs."""

from .monitor import ConvoyMonitor
from .registry import MonitorRegistry, get_registry
from .snapshot import MonitorKpis, Tick, compute_kpis, is_likely_live

__all__ = [
    "ConvoyMonitor",
    "MonitorKpis",
    "MonitorRegistry",
    "Tick",
    "compute_kpis",
    "get_registry",
    "is_likely_live",
]
