"""
Unit tests for server exception handlers.

Tests cover the rendering of application errors, request validation
failures and unhandled exceptions.
"""

import json
from typing import Optional
from unittest.mock import Mock, patch

import pytest
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from httpx import ASGITransport, AsyncClient

from smarti.core.errors import (
    ApiError,
    AuthorizationError,
    MalformedPayloadError,
    NotFoundError,
    PlainTextError,
)
from smarti.server.exception_handlers import setup_exception_handlers
from smarti.server.exception_handlers.global_handler import (
    api_error_handler,
    global_exception_handler,
    plain_text_error_handler,
)

HANDLER_MODULE = "smarti.server.exception_handlers.global_handler"


@pytest.fixture
def mock_request():
    request = Mock(spec=Request)
    request.method = "GET"
    request.url.path = "/api/test"
    request.query_params = {}
    request.client = Mock()
    request.client.host = "127.0.0.1"
    return request


class TestGlobalExceptionHandler:
    """Test suite for the handler of unhandled exceptions."""

    @pytest.mark.asyncio
    async def test_logs_error_with_context(self, mock_request):
        exc = ValueError("Test error")

        with patch(f"{HANDLER_MODULE}.logger") as mock_logger, patch(f"{HANDLER_MODULE}.log_error"):
            await global_exception_handler(mock_request, exc)

        mock_logger.error.assert_called_once()
        call_args = mock_logger.error.call_args
        assert "Unhandled exception" in call_args[0][0]
        assert call_args[1]["extra"]["error_type"] == "ValueError"
        assert call_args[1]["extra"]["client"] == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_returns_500_with_error_id(self, mock_request):
        exc = RuntimeError("Test error")

        with patch(f"{HANDLER_MODULE}.logger"), patch(f"{HANDLER_MODULE}.log_error"):
            response = await global_exception_handler(mock_request, exc)

        assert isinstance(response, JSONResponse)
        assert response.status_code == 500
        body = json.loads(response.body.decode())
        assert body == {"detail": "Internal server error", "error_id": id(exc), "error_type": "RuntimeError"}

    @pytest.mark.asyncio
    async def test_handles_missing_client(self, mock_request):
        mock_request.client = None

        with patch(f"{HANDLER_MODULE}.logger") as mock_logger, patch(f"{HANDLER_MODULE}.log_error"):
            await global_exception_handler(mock_request, KeyError("x"))

        assert mock_logger.error.call_args[1]["extra"]["client"] == "unknown"

    @pytest.mark.asyncio
    async def test_reports_to_monitoring(self, mock_request):
        with patch(f"{HANDLER_MODULE}.logger"), patch(f"{HANDLER_MODULE}.log_error") as mock_log_error:
            await global_exception_handler(mock_request, RuntimeError("boom"))

        mock_log_error.assert_called_once_with("RuntimeError", "boom", {"path": "/api/test", "method": "GET"})


class TestApplicationErrorHandlers:
    @pytest.mark.asyncio
    async def test_api_error_without_details(self, mock_request):
        response = await api_error_handler(mock_request, NotFoundError("Plan not found"))

        assert response.status_code == 404
        assert json.loads(response.body.decode()) == {"error": "Plan not found"}

    @pytest.mark.asyncio
    async def test_api_error_with_details(self, mock_request):
        exc = MalformedPayloadError("Invalid payload", details=[{"field": "code", "message": "required"}])

        response = await api_error_handler(mock_request, exc)

        assert response.status_code == 400
        assert json.loads(response.body.decode())["details"] == [{"field": "code", "message": "required"}]

    @pytest.mark.asyncio
    async def test_server_side_api_error_is_logged(self, mock_request):
        with patch(f"{HANDLER_MODULE}.logger") as mock_logger:
            await api_error_handler(mock_request, ApiError("Failed to create coupons", 500, details="locked"))

        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_plain_text_error(self, mock_request):
        response = await plain_text_error_handler(mock_request, AuthorizationError("Unauthorized"))

        assert isinstance(response, PlainTextResponse)
        assert response.status_code == 401
        assert response.body == b"Unauthorized"


class TestExceptionHandlerRegistration:
    """Exercise the handlers through a real application."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        setup_exception_handlers(app)

        @app.get("/plain")
        async def plain():
            raise PlainTextError("Missing required parameters", 400)

        @app.get("/api-error")
        async def api_error():
            raise NotFoundError("Coupon not found")

        @app.get("/validated")
        async def validated(step: Optional[int] = Query(default=None)):
            return {"step": step}

        @app.get("/boom")
        async def boom():
            raise RuntimeError("boom")

        return app

    @pytest.fixture
    def client(self, app):
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        return AsyncClient(transport=transport, base_url="http://test")

    def test_setup_registers_handlers(self, app):
        for exc_type in (PlainTextError, ApiError, Exception):
            assert exc_type in app.exception_handlers

    @pytest.mark.asyncio
    async def test_plain_text_response(self, client):
        async with client:
            response = await client.get("/plain")

        assert response.status_code == 400
        assert response.text == "Missing required parameters"

    @pytest.mark.asyncio
    async def test_api_error_response(self, client):
        async with client:
            response = await client.get("/api-error")

        assert response.status_code == 404
        assert response.json() == {"error": "Coupon not found"}

    @pytest.mark.asyncio
    async def test_validation_error_is_400(self, client):
        async with client:
            response = await client.get("/validated", params={"step": "two"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request"
        assert body["details"][0]["loc"] == ["query", "step"]

    @pytest.mark.asyncio
    async def test_unhandled_exception_is_500(self, client):
        with patch(f"{HANDLER_MODULE}.log_error"):
            async with client:
                response = await client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error_type"] == "RuntimeError"
