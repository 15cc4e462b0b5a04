"""Connection diagnostics endpoints.

- GET /connection/status — connection flag, attempt history, detection state
- POST /connection/check — run a lightweight check now (503 when disconnected)
- POST /connection/redetect — force backend re-detection
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Response

from faceit_client.models.responses import ApiResponse, ConnectionStatusData, RedetectData

if TYPE_CHECKING:
    from faceit_client.monitor.connection_monitor import ConnectionMonitor


def create_connection_router(monitor: ConnectionMonitor) -> APIRouter:
    """Factory that creates the connection router with an injected monitor."""

    router = APIRouter(prefix="/connection", tags=["connection"])

    def _status() -> ConnectionStatusData:
        return ConnectionStatusData.model_validate(monitor.get_status())

    @router.get("/status")
    async def status() -> dict:
        return ApiResponse[ConnectionStatusData](success=True, data=_status()).model_dump()

    @router.post("/check")
    async def check(response: Response) -> dict:
        connected = await monitor.check_connection()
        if not connected:
            response.status_code = 503
        return ApiResponse[ConnectionStatusData](
            success=connected,
            data=_status(),
            error=None if connected else "Backend not reachable",
        ).model_dump()

    @router.post("/redetect")
    async def redetect() -> dict:
        url = await monitor.reconnect()
        return ApiResponse[RedetectData](
            success=True,
            data=RedetectData(url=url, is_connected=monitor.is_connected),
        ).model_dump()

    return router
