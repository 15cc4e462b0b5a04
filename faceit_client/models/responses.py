"""Diagnostics response models.

Every diagnostics reply uses the ``{success, data, error, meta}`` envelope
that the error handlers also emit; ``data`` carries one of the connection
payloads below.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """JSON envelope for diagnostics responses."""

    success: bool
    data: T | None = None
    error: str | None = None
    meta: dict | None = None


class AttemptRecord(BaseModel):
    """One entry of the connection check history (newest first)."""

    url: str
    success: bool
    timestamp: str
    error: str | None = None


class ConnectionStatusData(BaseModel):
    is_connected: bool
    last_checked: str | None = None
    history: list[AttemptRecord] = Field(default_factory=list)
    detection: dict = Field(default_factory=dict)


class RedetectData(BaseModel):
    url: str
    is_connected: bool
