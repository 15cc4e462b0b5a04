"""Connection monitoring — periodic checks and attempt history."""

from faceit_client.monitor.connection_monitor import ConnectionMonitor
from faceit_client.monitor.types import ConnectionAttempt

__all__ = ["ConnectionAttempt", "ConnectionMonitor"]
