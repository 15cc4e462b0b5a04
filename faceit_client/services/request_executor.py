"""Resilient request executor — the surface every domain call site uses.

Each logical request runs against the coordinator's current base URL with
JSON content headers and, when a token is stored, a bearer Authorization
header. Every attempt is classified into an ``AttemptResult``:

- SUCCESS: 2xx, body parsed and returned.
- FATAL: non-retryable rejection (4xx other than a stale-route 404),
  propagated unchanged.
- RETRYABLE: 5xx, 404 (when enabled) or a transport failure.

A retryable failure asks the health tracker whether to redetect before the
failure itself is counted, so redetection starts on the first failure after
``failure_threshold`` failures are already on record. If so, the
coordinator re-probes and, only when the address changed, the request is
repeated once against the new address. There is at most one retry per call:
the retry result is final whatever its disposition.

Requests carrying ``files`` or ``data`` are sent as form/multipart bodies
without the JSON Content-Type so httpx can set the boundary.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from faceit_client.middleware.error_handler import ApiError, ClientError, NetworkError
from faceit_client.resilience.coordinator import EndpointCoordinator
from faceit_client.resilience.health_tracker import ConnectionHealthTracker
from faceit_client.services.token_store import ACCESS_TOKEN_KEY, InMemoryTokenStore, TokenStore

logger = logging.getLogger(__name__)


class Disposition(str, Enum):
    """Classification of a single request attempt."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class AttemptResult:
    disposition: Disposition
    address: str
    data: Any = None
    error: ClientError | None = None
    redetect: bool = False

    def unwrap(self) -> Any:
        """Return the parsed body, or raise the classified error."""
        if self.error is not None:
            raise self.error
        return self.data


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of an error response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or f"HTTP {response.status_code}"

    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}"


def _parse_body(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class ResilientRequestExecutor:
    """Executes API requests with failure classification and one bounded retry.

    Parameters
    ----------
    coordinator:
        Owner of the resolved base URL.
    health_tracker:
        Shared failure counter deciding when to redetect.
    token_store:
        Source of the bearer access token (read on every request).
    timeout_seconds:
        Per-attempt timeout (default 30).
    retry_on_not_found:
        Treat 404 as a possible stale-route symptom (default True).
    """

    def __init__(
        self,
        coordinator: EndpointCoordinator,
        health_tracker: ConnectionHealthTracker,
        token_store: TokenStore | None = None,
        timeout_seconds: float = 30.0,
        retry_on_not_found: bool = True,
    ) -> None:
        self._coordinator = coordinator
        self._health = health_tracker
        self._token_store = token_store if token_store is not None else InMemoryTokenStore()
        self._timeout = timeout_seconds
        self._retry_on_not_found = retry_on_not_found

    @property
    def token_store(self) -> TokenStore:
        return self._token_store

    def build_headers(self, json_body: bool = True) -> dict[str, str]:
        headers = {"Content-Type": "application/json"} if json_body else {}
        token = self._token_store.get(ACCESS_TOKEN_KEY)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

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
        """Run one logical request and return the parsed body.

        ``body`` is sent as JSON; ``data``/``files`` as a form or multipart
        body instead.

        Raises
        ------
        ApiError
            Backend answered with a non-2xx status.
        NetworkError
            Transport failure (timeout, refused, DNS).
        NoReachableEndpointError
            Cold start with no reachable candidate and no fallback.
        """
        payload = {"json": body, "params": params, "data": data, "files": files}
        address = await self._coordinator.resolve()
        result = await self._attempt(address, method, path, payload, attempt=1)

        if result.disposition is not Disposition.RETRYABLE or not result.redetect:
            return result.unwrap()

        self._health.mark_detection_attempted()
        new_address = await self._coordinator.force_redetect()
        if new_address == address:
            logger.info(
                "Redetection kept %s, not retrying %s %s",
                address,
                method,
                path,
                extra={"endpoint": address},
            )
            return result.unwrap()

        logger.info(
            "Backend moved from %s to %s, retrying %s %s once",
            address,
            new_address,
            method,
            path,
            extra={"endpoint": new_address, "attempt": 2},
        )
        retry = await self._attempt(new_address, method, path, payload, attempt=2)
        return retry.unwrap()

    async def _attempt(
        self,
        address: str,
        method: str,
        path: str,
        payload: dict[str, Any],
        *,
        attempt: int,
    ) -> AttemptResult:
        """Issue one HTTP request and classify its outcome."""
        url = f"{address.rstrip('/')}/{path.lstrip('/')}"
        form = payload["data"] is not None or payload["files"] is not None
        request_kwargs = {key: value for key, value in payload.items() if value is not None}
        started = time.monotonic()

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                response = await client.request(
                    method.upper(),
                    url,
                    headers=self.build_headers(json_body=not form),
                    **request_kwargs,
                )
        except httpx.TransportError as exc:
            redetect = self._health.should_detect_now()
            self._health.report_failure()
            error_kind = "timeout" if isinstance(exc, httpx.TimeoutException) else "transport"
            logger.warning(
                "%s %s failed: %s",
                method.upper(),
                url,
                exc,
                extra={"endpoint": address, "error_kind": error_kind, "attempt": attempt},
            )
            error = NetworkError(
                f"{error_kind} talking to {address}: {exc}",
                endpoint=address,
                error_kind=error_kind,
            )
            return AttemptResult(Disposition.RETRYABLE, address, error=error, redetect=redetect)

        duration_ms = round((time.monotonic() - started) * 1000, 1)

        if response.is_success:
            self._health.report_success()
            logger.debug(
                "%s %s -> %d",
                method.upper(),
                url,
                response.status_code,
                extra={"endpoint": address, "attempt": attempt, "duration_ms": duration_ms},
            )
            return AttemptResult(Disposition.SUCCESS, address, data=_parse_body(response))

        # Gate on the failure run recorded before this one
        redetect = self._health.should_detect_now()
        self._health.report_failure()
        status = response.status_code
        if status >= 500:
            error_kind = "server_error"
        elif status == 404 and self._retry_on_not_found:
            error_kind = "stale_route"
        else:
            error_kind = "client_error"
        retryable = error_kind != "client_error"

        logger.warning(
            "%s %s returned %d",
            method.upper(),
            url,
            status,
            extra={
                "endpoint": address,
                "error_kind": error_kind,
                "status_code": status,
                "attempt": attempt,
                "duration_ms": duration_ms,
            },
        )
        try:
            error_payload = response.json()
        except ValueError:
            error_payload = None
        error = ApiError(
            status,
            _error_message(response),
            endpoint=address,
            retryable=retryable,
            payload=error_payload,
        )
        disposition = Disposition.RETRYABLE if retryable else Disposition.FATAL
        return AttemptResult(disposition, address, error=error, redetect=redetect and retryable)
