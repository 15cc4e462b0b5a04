"""ApiConnection — the one stateful object that owns discovery and request state.

Construct one per process (or one per test) and hand its ``execute`` to
domain call sites; they never see addresses or discovery state.
"""

from __future__ import annotations

from typing import Any

from faceit_client.config.settings import ClientSettings
from faceit_client.endpoints.prober import EndpointProber
from faceit_client.endpoints.registry import CandidateRegistry
from faceit_client.resilience.coordinator import EndpointCoordinator
from faceit_client.resilience.health_tracker import ConnectionHealthTracker
from faceit_client.services.request_executor import ResilientRequestExecutor
from faceit_client.services.token_store import InMemoryTokenStore, TokenStore


class ApiConnection:
    """Wires registry, prober, health tracker, coordinator and executor together."""

    def __init__(
        self,
        *,
        registry: CandidateRegistry,
        prober: EndpointProber,
        health_tracker: ConnectionHealthTracker,
        token_store: TokenStore | None = None,
        request_timeout_seconds: float = 30.0,
        retry_on_not_found: bool = True,
    ) -> None:
        self.registry = registry
        self.prober = prober
        self.health = health_tracker
        self.token_store = token_store if token_store is not None else InMemoryTokenStore()
        self.coordinator = EndpointCoordinator(registry, prober)
        self.executor = ResilientRequestExecutor(
            self.coordinator,
            health_tracker,
            token_store=self.token_store,
            timeout_seconds=request_timeout_seconds,
            retry_on_not_found=retry_on_not_found,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        token_store: TokenStore | None = None,
    ) -> ApiConnection:
        return cls(
            registry=CandidateRegistry.from_settings(settings),
            prober=EndpointProber(
                probe_path=settings.probe_path,
                timeout_seconds=settings.probe_timeout_seconds,
                strategy=settings.probe_strategy,
            ),
            health_tracker=ConnectionHealthTracker(
                failure_threshold=settings.failure_threshold,
                cooldown_seconds=settings.redetect_cooldown_seconds,
            ),
            token_store=token_store,
            request_timeout_seconds=settings.request_timeout_seconds,
            retry_on_not_found=settings.retry_on_not_found,
        )

    @property
    def current_url(self) -> str | None:
        return self.coordinator.current_url

    async def resolve(self) -> str:
        return await self.coordinator.resolve()

    async def force_redetect(self) -> str:
        return await self.coordinator.force_redetect()

    async def execute(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        *,
        data: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        return await self.executor.execute(method, path, body, params=params, data=data, files=files)

    def get_detection_status(self) -> dict:
        """Combined coordinator and health tracker state for diagnostics."""
        return {**self.coordinator.get_stats(), **self.health.get_stats()}
