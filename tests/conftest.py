"""Shared test fixtures and hypothesis strategies for the client test suite."""

from __future__ import annotations

import os

import pytest

from faceit_client.config.settings import ClientSettings
from faceit_client.connection import ApiConnection
from faceit_client.endpoints.prober import EndpointProber
from faceit_client.endpoints.registry import CandidateRegistry
from faceit_client.resilience.health_tracker import ConnectionHealthTracker
from faceit_client.services.token_store import InMemoryTokenStore


# ---------------------------------------------------------------------------
# Keep developer FACEIT_* overrides out of the tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_faceit_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("FACEIT_"):
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_connection(
    candidates: list[str],
    *,
    fallback_url: str | None = None,
    failure_threshold: int = 3,
    cooldown_seconds: float = 30,
    retry_on_not_found: bool = True,
    token_store: InMemoryTokenStore | None = None,
) -> ApiConnection:
    return ApiConnection(
        registry=CandidateRegistry.from_urls(candidates, fallback_url=fallback_url),
        prober=EndpointProber(probe_path="/system/health/", timeout_seconds=1.0),
        health_tracker=ConnectionHealthTracker(
            failure_threshold=failure_threshold,
            cooldown_seconds=cooldown_seconds,
        ),
        token_store=token_store,
        request_timeout_seconds=1.0,
        retry_on_not_found=retry_on_not_found,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def connection_factory():
    """Factory building an isolated ApiConnection per test."""
    return _make_connection


@pytest.fixture
def settings() -> ClientSettings:
    """Test settings with safe defaults."""
    return ClientSettings(
        api_base_url="http://localhost:8000/api",
        candidate_urls=["http://10.0.0.5:8000/api", "http://localhost:8000/api"],
        probe_timeout_seconds=1.0,
        request_timeout_seconds=1.0,
    )


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def health_tracker() -> ConnectionHealthTracker:
    return ConnectionHealthTracker(failure_threshold=3, cooldown_seconds=30)
