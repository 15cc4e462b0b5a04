"""Unit tests for the resilient request executor."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from faceit_client.middleware.error_handler import ApiError, NetworkError
from faceit_client.services.token_store import ACCESS_TOKEN_KEY, InMemoryTokenStore

OFFICE = "http://10.0.0.5:8000/api"
LOCAL = "http://localhost:8000/api"


class FakeBackend:
    """Routes patched httpx calls: probes via ``get``, API calls via ``request``.

    ``reachable`` decides which base URLs answer the health probe;
    ``responses`` maps a base URL to a list of (status, json) or exceptions
    returned in order (the last one repeats).
    """

    def __init__(self, reachable: set[str], responses: dict[str, list]) -> None:
        self.reachable = reachable
        self.responses = responses
        self.probes: list[str] = []
        self.requests: list[tuple[str, str, dict]] = []

    async def get(self, url, **kwargs):
        self.probes.append(url)
        base = url.removesuffix("/system/health/")
        if base not in self.reachable:
            raise httpx.ConnectError("Connection refused")
        return httpx.Response(200, json={"status": "healthy"}, request=httpx.Request("GET", url))

    async def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        base = next(b for b in self.responses if url.startswith(b))
        queue = self.responses[base]
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, Exception):
            raise outcome
        status, payload = outcome
        return httpx.Response(status, json=payload, request=httpx.Request(method, url))

    def patch(self):
        return _Patches(self)


class _Patches:
    def __init__(self, backend: FakeBackend) -> None:
        self._get = patch("httpx.AsyncClient.get", new_callable=AsyncMock, side_effect=backend.get)
        self._request = patch(
            "httpx.AsyncClient.request", new_callable=AsyncMock, side_effect=backend.request
        )

    def __enter__(self):
        self._get.__enter__()
        self._request.__enter__()
        return self

    def __exit__(self, *exc):
        self._request.__exit__(*exc)
        self._get.__exit__(*exc)


class TestSuccess:
    @pytest.mark.asyncio
    async def test_returns_parsed_body_and_reports_success(self, connection_factory):
        backend = FakeBackend({LOCAL}, {LOCAL: [(200, [{"id": 1}])]})
        connection = connection_factory([OFFICE, LOCAL])
        connection.health.report_failure()

        with backend.patch():
            data = await connection.execute("GET", "/students/")

        assert data == [{"id": 1}]
        assert connection.health.consecutive_failures == 0
        assert backend.requests[0][1] == f"{LOCAL}/students/"

    @pytest.mark.asyncio
    async def test_sends_json_body_and_params(self, connection_factory):
        backend = FakeBackend({LOCAL}, {LOCAL: [(201, {"id": 7})]})
        connection = connection_factory([LOCAL])

        with backend.patch():
            await connection.execute("post", "/attendance/", {"student": 3}, params={"day": "mon"})

        method, _url, kwargs = backend.requests[0]
        assert method == "POST"
        assert kwargs["json"] == {"student": 3}
        assert kwargs["params"] == {"day": "mon"}
        assert kwargs["headers"]["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self, connection_factory):
        connection = connection_factory([LOCAL])

        async def no_content(method, url, **kwargs):
            return httpx.Response(204, request=httpx.Request(method, url))

        backend = FakeBackend({LOCAL}, {})
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, side_effect=backend.get):
            with patch("httpx.AsyncClient.request", new_callable=AsyncMock, side_effect=no_content):
                assert await connection.execute("DELETE", "/students/1/") is None


class TestAuthorizationHeader:
    @pytest.mark.asyncio
    async def test_set_and_remove_token(self, connection_factory):
        store = InMemoryTokenStore()
        backend = FakeBackend({LOCAL}, {LOCAL: [(200, {})]})
        connection = connection_factory([LOCAL], token_store=store)

        with backend.patch():
            await connection.execute("GET", "/students/")
            store.set(ACCESS_TOKEN_KEY, "abc123")
            await connection.execute("GET", "/students/")
            store.remove(ACCESS_TOKEN_KEY)
            await connection.execute("GET", "/students/")

        headers = [kwargs["headers"] for _, _, kwargs in backend.requests]
        assert "Authorization" not in headers[0]
        assert headers[1]["Authorization"] == "Bearer abc123"
        assert "Authorization" not in headers[2]


class TestNonRetryable:
    @pytest.mark.asyncio
    async def test_422_never_retried_or_redetected(self, connection_factory):
        backend = FakeBackend(
            {LOCAL}, {LOCAL: [(422, {"message": "Student number already exists"})]}
        )
        connection = connection_factory([LOCAL], failure_threshold=1, cooldown_seconds=0)

        with backend.patch():
            with pytest.raises(ApiError) as exc_info:
                await connection.execute("POST", "/students/", {"name": "x"})

        assert exc_info.value.status == 422
        assert exc_info.value.message == "Student number already exists"
        assert exc_info.value.retryable is False
        assert len(backend.requests) == 1
        assert len(backend.probes) == 1
        assert connection.health.consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_404_not_retried_when_policy_disabled(self, connection_factory):
        backend = FakeBackend({OFFICE, LOCAL}, {OFFICE: [(404, {"detail": "Not found."})]})
        connection = connection_factory(
            [OFFICE, LOCAL], failure_threshold=1, retry_on_not_found=False
        )

        with backend.patch():
            with pytest.raises(ApiError) as exc_info:
                await connection.execute("GET", "/students/99/")

        assert exc_info.value.status == 404
        assert exc_info.value.message == "Not found."
        assert len(backend.probes) == 1


class TestRetryable:
    @pytest.mark.asyncio
    async def test_500_below_threshold_propagates_without_redetect(self, connection_factory):
        backend = FakeBackend({LOCAL}, {LOCAL: [(500, {"message": "boom"})]})
        connection = connection_factory([LOCAL], failure_threshold=3)

        with backend.patch():
            with pytest.raises(ApiError) as exc_info:
                await connection.execute("GET", "/students/")

        assert exc_info.value.status == 500
        assert exc_info.value.retryable is True
        assert len(backend.probes) == 1
        assert connection.health.state.last_detection_at is None

    @pytest.mark.asyncio
    async def test_500_redetects_and_retries_once_on_new_address(self, connection_factory):
        backend = FakeBackend(
            {OFFICE, LOCAL},
            {OFFICE: [(500, {"message": "down"})], LOCAL: [(200, {"ok": True})]},
        )
        connection = connection_factory([OFFICE, LOCAL], failure_threshold=1)
        connection.health.report_failure()

        with backend.patch():
            await connection.resolve()
            backend.reachable.discard(OFFICE)
            data = await connection.execute("GET", "/students/")

        assert data == {"ok": True}
        assert [url for _, url, _ in backend.requests] == [
            f"{OFFICE}/students/",
            f"{LOCAL}/students/",
        ]
        assert connection.current_url == LOCAL
        assert connection.health.consecutive_failures == 0
        assert connection.health.state.last_detection_at is not None

    @pytest.mark.asyncio
    async def test_failed_retry_surfaces_retry_error(self, connection_factory):
        backend = FakeBackend(
            {OFFICE, LOCAL},
            {OFFICE: [(500, {"message": "first"})], LOCAL: [(503, {"message": "second"})]},
        )
        connection = connection_factory([OFFICE, LOCAL], failure_threshold=1, cooldown_seconds=0)
        connection.health.report_failure()

        with backend.patch():
            await connection.resolve()
            backend.reachable.discard(OFFICE)
            with pytest.raises(ApiError) as exc_info:
                await connection.execute("GET", "/students/")

        assert exc_info.value.status == 503
        assert exc_info.value.message == "second"
        # Exactly one retry, never a second
        assert len(backend.requests) == 2

    @pytest.mark.asyncio
    async def test_transport_error_is_network_error(self, connection_factory):
        backend = FakeBackend({LOCAL}, {LOCAL: [httpx.ConnectError("Connection refused")]})
        connection = connection_factory([LOCAL], failure_threshold=3)

        with backend.patch():
            with pytest.raises(NetworkError) as exc_info:
                await connection.execute("GET", "/students/")

        assert exc_info.value.endpoint == LOCAL
        assert exc_info.value.error_kind == "transport"

    @pytest.mark.asyncio
    async def test_timeout_retried_on_new_address(self, connection_factory):
        backend = FakeBackend(
            {OFFICE, LOCAL},
            {OFFICE: [httpx.ReadTimeout("timed out")], LOCAL: [(200, {"ok": True})]},
        )
        connection = connection_factory([OFFICE, LOCAL], failure_threshold=1)
        connection.health.report_failure()

        with backend.patch():
            await connection.resolve()
            backend.reachable.discard(OFFICE)
            assert await connection.execute("GET", "/courses/") == {"ok": True}

    @pytest.mark.asyncio
    async def test_404_treated_as_stale_route(self, connection_factory):
        backend = FakeBackend(
            {OFFICE, LOCAL},
            {OFFICE: [(404, {"detail": "Not found."})], LOCAL: [(200, {"ok": True})]},
        )
        connection = connection_factory([OFFICE, LOCAL], failure_threshold=1)
        connection.health.report_failure()

        with backend.patch():
            await connection.resolve()
            backend.reachable.discard(OFFICE)
            assert await connection.execute("GET", "/students/") == {"ok": True}

    @pytest.mark.asyncio
    async def test_cooldown_blocks_second_redetection(self, connection_factory):
        backend = FakeBackend({LOCAL}, {LOCAL: [(500, {"message": "down"})]})
        connection = connection_factory([LOCAL], failure_threshold=1, cooldown_seconds=60)

        with backend.patch():
            for _ in range(3):
                with pytest.raises(ApiError):
                    await connection.execute("GET", "/students/")

        # Initial resolve + one redetection on the second failure; the third sits inside the cooldown
        assert len(backend.probes) == 2
        assert len(backend.requests) == 3


class TestScenario:
    @pytest.mark.asyncio
    async def test_failure_after_threshold_redetects_without_retry(self, connection_factory):
        backend = FakeBackend({LOCAL}, {LOCAL: [(500, {"message": "server error"})]})
        connection = connection_factory([OFFICE, LOCAL], failure_threshold=3)
        rounds = []

        with backend.patch():
            assert await connection.resolve() == LOCAL

            for _ in range(4):
                with pytest.raises(ApiError) as exc_info:
                    await connection.execute("GET", "/reports/daily/")
                rounds.append(connection.coordinator.rounds)

        # Three failures fill the run; the fourth triggers the redetection round
        assert rounds == [1, 1, 1, 2]
        assert exc_info.value.status == 500
        assert exc_info.value.message == "server error"
        assert connection.health.consecutive_failures == 4
        assert connection.health.state.last_detection_at is not None
        assert connection.current_url == LOCAL
        # Same address after redetection: no retry, one request per call
        assert len(backend.requests) == 4

    @pytest.mark.asyncio
    async def test_threshold_failures_alone_do_not_redetect(self, connection_factory):
        backend = FakeBackend({LOCAL}, {LOCAL: [(500, {"message": "server error"})]})
        connection = connection_factory([LOCAL], failure_threshold=3)

        with backend.patch():
            for _ in range(3):
                with pytest.raises(ApiError):
                    await connection.execute("GET", "/reports/daily/")

        assert connection.health.consecutive_failures == 3
        assert connection.health.should_detect_now() is True
        assert connection.coordinator.rounds == 1
        assert len(backend.probes) == 1


class TestFormBodies:
    @pytest.mark.asyncio
    async def test_multipart_upload_drops_json_content_type(self, connection_factory):
        backend = FakeBackend({LOCAL}, {LOCAL: [(201, {"id": 1})]})
        connection = connection_factory([LOCAL], token_store=InMemoryTokenStore({ACCESS_TOKEN_KEY: "tok"}))
        image = ("face.jpg", b"\xff\xd8\xff", "image/jpeg")

        with backend.patch():
            data = await connection.execute(
                "POST",
                "/face-recognition/upload/",
                data={"student_id": "7"},
                files={"image": image},
            )

        assert data == {"id": 1}
        _, url, kwargs = backend.requests[0]
        assert url == f"{LOCAL}/face-recognition/upload/"
        assert kwargs["files"] == {"image": image}
        assert kwargs["data"] == {"student_id": "7"}
        assert "json" not in kwargs
        assert "Content-Type" not in kwargs["headers"]
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
