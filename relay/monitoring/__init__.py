"""
Liveness monitoring of the game server and backend, plus the status page.
"""

from relay.monitoring.liveness import (
    GAME,
    BACKEND,
    LivenessMonitor,
    LivenessRecord,
    MonitoredEndpoint,
    probe_port,
)
from relay.monitoring.status_page import StatusPage


__all__ = [
    "GAME",
    "BACKEND",
    "LivenessMonitor",
    "LivenessRecord",
    "MonitoredEndpoint",
    "probe_port",
    "StatusPage",
]
