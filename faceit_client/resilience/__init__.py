"""Resilience components — health tracking and single-flight resolution."""

from faceit_client.resilience.coordinator import EndpointCoordinator
from faceit_client.resilience.health_tracker import ConnectionHealthTracker, HealthState

__all__ = [
    "ConnectionHealthTracker",
    "EndpointCoordinator",
    "HealthState",
]
