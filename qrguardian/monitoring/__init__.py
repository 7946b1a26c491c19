"""Threat-change monitoring."""

from .threat_changes import LoggingThreatNotifier, ThreatChange, ThreatChangeMonitor

__all__ = [
    "LoggingThreatNotifier",
    "ThreatChange",
    "ThreatChangeMonitor",
]
