"""Monitoring module for magnetic field visualization."""

from .metrics import EventMonitor, MonitorStats, SourceRate

__all__ = ["EventMonitor", "MonitorStats", "SourceRate"]
