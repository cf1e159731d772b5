from __future__ import annotations

from typing import Callable, List
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from monoship.utils.http import HTTPClient
from monoship.exceptions import NetworkError

URL = "https://registry.example.com/app"


def _client(handler: Callable[[httpx.Request], httpx.Response], **kwargs: object) -> HTTPClient:
    return HTTPClient(transport=httpx.MockTransport(handler), **kwargs)  # type: ignore[arg-type]


class Scripted:
    """Handler answering with a fixed sequence of responses or errors."""

    def __init__(self, *outcomes: object) -> None:
        self.outcomes = list(outcomes)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        assert isinstance(outcome, httpx.Response)
        return outcome


@pytest.fixture
def no_sleep():
    """Skip backoff delays."""
    with patch("monoship.utils.http.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


# ==============================================================================
# Configuration
# ==============================================================================


@pytest.mark.unit
class TestHTTPClientInit:
    """Tests for HTTPClient initialization."""

    def test_default_values(self) -> None:
        """Test defaults match the configured constants."""
        client = HTTPClient()

        assert client.timeout == 30
        assert client.max_retries == 3
        assert client.verify_ssl is True
        assert client.token is None
        assert "monoship" in client.user_agent
        assert client._client is None

    def test_custom_values(self) -> None:
        """Test every option is stored."""
        client = HTTPClient(
            timeout=5, max_retries=0, verify_ssl=False, user_agent="Custom/1.0", token="t"
        )

        assert client.timeout == 5
        assert client.max_retries == 0
        assert client.verify_ssl is False
        assert client.user_agent == "Custom/1.0"
        assert client.token == "t"


@pytest.mark.unit
class TestHTTPClientLifecycle:
    """Tests for client creation and closing."""

    @pytest.mark.asyncio
    async def test_context_manager(self) -> None:
        """Test the httpx client exists only inside the context."""
        client = _client(lambda request: httpx.Response(200))

        async with client:
            assert isinstance(client._client, httpx.AsyncClient)

        assert client._client is None

    @pytest.mark.asyncio
    async def test_closes_on_exception(self) -> None:
        """Test the client is closed when the body raises."""
        client = _client(lambda request: httpx.Response(200))

        with pytest.raises(RuntimeError):
            async with client:
                raise RuntimeError("boom")

        assert client._client is None

    @pytest.mark.asyncio
    async def test_close_twice(self) -> None:
        """Test closing is idempotent."""
        client = _client(lambda request: httpx.Response(200))
        await client.close()
        await client.close()

    @pytest.mark.asyncio
    async def test_lazy_creation(self) -> None:
        """Test a request outside a context creates the client on demand."""
        client = _client(lambda request: httpx.Response(200))

        try:
            response = await client.get(URL)
            assert response.status_code == 200
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_headers(self) -> None:
        """Test User-Agent, Accept and Authorization headers."""
        handler = Scripted(httpx.Response(200))
        client = _client(handler, token="s3cret", user_agent="Agent/1")

        async with client:
            await client.get(URL)

        headers = handler.requests[0].headers
        assert headers["User-Agent"] == "Agent/1"
        assert headers["Accept"] == "application/json"
        assert headers["Authorization"] == "Bearer s3cret"

    @pytest.mark.asyncio
    async def test_no_token_no_authorization(self) -> None:
        """Test anonymous clients send no Authorization header."""
        handler = Scripted(httpx.Response(200))

        async with _client(handler) as client:
            await client.get(URL)

        assert "Authorization" not in handler.requests[0].headers


# ==============================================================================
# Retries
# ==============================================================================


@pytest.mark.unit
class TestHTTPClientRetries:
    """Tests for retry behavior."""

    @pytest.mark.asyncio
    async def test_get_retries_5xx(self, no_sleep: AsyncMock) -> None:
        """Test reads are retried on server errors."""
        handler = Scripted(httpx.Response(503), httpx.Response(502), httpx.Response(200))

        async with _client(handler, max_retries=3) as client:
            response = await client.get(URL)

        assert response.status_code == 200
        assert len(handler.requests) == 3
        assert no_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_get_returns_last_5xx(self, no_sleep: AsyncMock) -> None:
        """Test the final 5xx is returned once retries run out."""
        handler = Scripted(httpx.Response(500), httpx.Response(500))

        async with _client(handler, max_retries=1) as client:
            response = await client.get(URL)

        assert response.status_code == 500
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_4xx_not_retried(self, no_sleep: AsyncMock) -> None:
        """Test client errors are returned immediately."""
        handler = Scripted(httpx.Response(404))

        async with _client(handler) as client:
            response = await client.get(URL)

        assert response.status_code == 404
        assert len(handler.requests) == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transport_errors_retried(self, no_sleep: AsyncMock) -> None:
        """Test connection failures are retried, then reported."""
        request = httpx.Request("GET", URL)
        handler = Scripted(
            httpx.ConnectError("refused", request=request),
            httpx.ReadTimeout("slow", request=request),
        )

        async with _client(handler, max_retries=1) as client:
            with pytest.raises(NetworkError, match="after 2 attempt") as exc_info:
                await client.get(URL)

        assert exc_info.value.url == URL
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)

    @pytest.mark.asyncio
    async def test_exponential_backoff(self, no_sleep: AsyncMock) -> None:
        """Test delays double between attempts."""
        handler = Scripted(httpx.Response(503), httpx.Response(503), httpx.Response(200))

        async with _client(handler, max_retries=2) as client:
            await client.get(URL)

        delays = [call.args[0] for call in no_sleep.await_args_list]
        assert 1.0 <= delays[0] < 1.31
        assert 2.0 <= delays[1] < 2.31

    @pytest.mark.asyncio
    async def test_put_never_retried(self, no_sleep: AsyncMock) -> None:
        """Test writes are sent exactly once even on 5xx."""
        handler = Scripted(httpx.Response(503), httpx.Response(200))

        async with _client(handler, max_retries=3) as client:
            response = await client.put(URL, json={"a": 1})

        assert response.status_code == 503
        assert len(handler.requests) == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_put_transport_error(self, no_sleep: AsyncMock) -> None:
        """Test a failed write raises after one attempt."""
        request = httpx.Request("PUT", URL)
        handler = Scripted(httpx.ConnectError("refused", request=request))

        async with _client(handler) as client:
            with pytest.raises(NetworkError, match="after 1 attempt"):
                await client.put(URL, json={})

        assert len(handler.requests) == 1


# ==============================================================================
# JSON helper
# ==============================================================================


@pytest.mark.unit
class TestGetJson:
    """Tests for get_json."""

    @pytest.mark.asyncio
    async def test_object(self) -> None:
        """Test a JSON object is decoded."""
        handler = Scripted(httpx.Response(200, json={"dist-tags": {"latest": "1.0.0"}}))

        async with _client(handler) as client:
            assert await client.get_json(URL) == {"dist-tags": {"latest": "1.0.0"}}

    @pytest.mark.asyncio
    async def test_404_is_none(self) -> None:
        """Test a missing document returns None."""
        async with _client(Scripted(httpx.Response(404))) as client:
            assert await client.get_json(URL) is None

    @pytest.mark.asyncio
    async def test_error_status(self) -> None:
        """Test other error statuses raise NetworkError."""
        handler = Scripted(httpx.Response(401, text="unauthorized"))

        async with _client(handler) as client:
            with pytest.raises(NetworkError) as exc_info:
                await client.get_json(URL)

        assert exc_info.value.status_code == 401
        assert exc_info.value.response_body == "unauthorized"

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        """Test a non-JSON body raises NetworkError."""
        handler = Scripted(httpx.Response(200, text="<html>"))

        async with _client(handler) as client:
            with pytest.raises(NetworkError, match="Invalid JSON"):
                await client.get_json(URL)

    @pytest.mark.asyncio
    async def test_non_object(self) -> None:
        """Test a JSON array is rejected."""
        handler = Scripted(httpx.Response(200, json=[1, 2]))

        async with _client(handler) as client:
            with pytest.raises(NetworkError, match="Expected JSON object"):
                await client.get_json(URL)
