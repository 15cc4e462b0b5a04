"""Response models for the diagnostics service."""

from faceit_client.models.responses import (
    ApiResponse,
    AttemptRecord,
    ConnectionStatusData,
    RedetectData,
)

__all__ = ["ApiResponse", "AttemptRecord", "ConnectionStatusData", "RedetectData"]
