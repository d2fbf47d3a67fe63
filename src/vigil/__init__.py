"""vigil: heartbeat scheduling and notification dispatch."""

__version__ = "0.3.0"
