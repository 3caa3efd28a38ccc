"""
Unit Tests for Request Context Middleware.

Tests the RequestContextMiddleware functionality including:
- Request ID generation and propagation
- Frontend extraction from X-Frontend-ID header
- Client address resolution
- Structlog context binding
"""

from unittest.mock import MagicMock, patch

import pytest
from starlette.requests import Request
from starlette.responses import Response

from cloudnote.core.middleware import RequestContextMiddleware, client_address


@pytest.fixture
def mock_request():
    """Create a mock request."""
    request = MagicMock(spec=Request)
    request.headers = {}
    request.method = "GET"
    request.url = MagicMock()
    request.url.path = "/api/note/abc"
    request.client = MagicMock()
    request.client.host = "127.0.0.1"
    request.state = MagicMock()
    return request


class TestRequestContextMiddleware:
    """Tests for RequestContextMiddleware."""

    @pytest.fixture
    def middleware(self):
        return RequestContextMiddleware(MagicMock())

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "header, expected",
        [("web", "web"), ("ADMIN", "admin"), ("cli", "cli"), ("custom-client", "unknown")],
    )
    async def test_frontend_extraction(self, middleware, mock_request, header, expected):
        mock_request.headers = {"X-Frontend-ID": header}

        async def call_next(request):
            assert request.state.frontend == expected
            return Response(content="OK", status_code=200)

        with patch("cloudnote.core.middleware.structlog.contextvars"):
            await middleware.dispatch(mock_request, call_next)

    @pytest.mark.asyncio
    async def test_frontend_defaults_to_unknown(self, middleware, mock_request):
        async def call_next(request):
            return Response(content="OK", status_code=200)

        with patch("cloudnote.core.middleware.structlog.contextvars") as mock_ctx:
            await middleware.dispatch(mock_request, call_next)

        call_kwargs = mock_ctx.bind_contextvars.call_args[1]
        assert call_kwargs["frontend"] == "unknown"
        assert call_kwargs["path"] == "/api/note/abc"
        assert call_kwargs["method"] == "GET"

    @pytest.mark.asyncio
    async def test_generates_request_id_when_not_provided(self, middleware, mock_request):
        async def call_next(request):
            assert len(request.state.request_id) == 36
            return Response(content="OK", status_code=200)

        with patch("cloudnote.core.middleware.structlog.contextvars"):
            response = await middleware.dispatch(mock_request, call_next)

        assert len(response.headers["X-Request-ID"]) == 36

    @pytest.mark.asyncio
    async def test_uses_provided_request_id(self, middleware, mock_request):
        mock_request.headers = {"X-Request-ID": "custom-request-id-123"}

        async def call_next(request):
            assert request.state.request_id == "custom-request-id-123"
            return Response(content="OK", status_code=200)

        with patch("cloudnote.core.middleware.structlog.contextvars"):
            response = await middleware.dispatch(mock_request, call_next)

        assert response.headers["X-Request-ID"] == "custom-request-id-123"

    @pytest.mark.asyncio
    async def test_adds_response_time_header(self, middleware, mock_request):
        async def call_next(request):
            return Response(content="OK", status_code=200)

        with patch("cloudnote.core.middleware.structlog.contextvars"):
            response = await middleware.dispatch(mock_request, call_next)

        assert response.headers["X-Response-Time"].endswith("ms")

    @pytest.mark.asyncio
    async def test_sets_client_ip(self, middleware, mock_request):
        mock_request.headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}

        async def call_next(request):
            assert request.state.client_ip == "203.0.113.7"
            return Response(content="OK", status_code=200)

        with patch("cloudnote.core.middleware.structlog.contextvars"):
            await middleware.dispatch(mock_request, call_next)

    @pytest.mark.asyncio
    async def test_exception_propagates_and_context_cleared(self, middleware, mock_request):
        async def call_next(request):
            raise RuntimeError("handler blew up")

        with patch("cloudnote.core.middleware.structlog.contextvars") as mock_ctx:
            with pytest.raises(RuntimeError):
                await middleware.dispatch(mock_request, call_next)

        assert mock_ctx.clear_contextvars.call_count == 2


class TestClientAddress:
    def test_prefers_first_forwarded_hop(self, mock_request):
        mock_request.headers = {"X-Forwarded-For": " 198.51.100.2 , 10.0.0.1"}
        assert client_address(mock_request) == "198.51.100.2"

    def test_falls_back_to_peer(self, mock_request):
        assert client_address(mock_request) == "127.0.0.1"

    def test_blank_forwarded_header_ignored(self, mock_request):
        mock_request.headers = {"X-Forwarded-For": " , 10.0.0.1"}
        assert client_address(mock_request) == "127.0.0.1"

    def test_unknown_without_client(self, mock_request):
        mock_request.client = None
        assert client_address(mock_request) == "unknown"
