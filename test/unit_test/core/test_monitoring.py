"""
Unit tests for the monitoring module.

Logfire itself is always patched: tests check what is sent, and that
telemetry failures never reach the caller.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI

from smarti.core import monitoring
from smarti.core.monitoring import initialize_logfire, log_api_request, log_error, track_server_event

MODULE = "smarti.core.monitoring"


class TestInitializeLogfire:
    def test_disabled(self):
        with patch(f"{MODULE}.LOGFIRE_ENABLED", False), patch(f"{MODULE}.logfire") as mock_logfire:
            assert initialize_logfire() is False

        mock_logfire.configure.assert_not_called()

    def test_enabled_without_token(self):
        with (
            patch(f"{MODULE}.LOGFIRE_ENABLED", True),
            patch(f"{MODULE}.LOGFIRE_TOKEN", ""),
            patch(f"{MODULE}.logfire") as mock_logfire,
            patch(f"{MODULE}.logger") as mock_logger,
        ):
            assert initialize_logfire() is False

        mock_logfire.configure.assert_not_called()
        assert "LOGFIRE_TOKEN is not set" in mock_logger.warning.call_args[0][0]

    def test_configures_and_instruments(self):
        app = FastAPI()
        with (
            patch(f"{MODULE}.LOGFIRE_ENABLED", True),
            patch(f"{MODULE}.LOGFIRE_TOKEN", "token"),
            patch(f"{MODULE}.logfire") as mock_logfire,
        ):
            assert initialize_logfire(app) is True

        kwargs = mock_logfire.configure.call_args[1]
        assert kwargs["token"] == "token"
        assert kwargs["service_name"] == monitoring.LOGFIRE_SERVICE_NAME
        mock_logfire.instrument_sqlalchemy.assert_called_once()
        mock_logfire.instrument_httpx.assert_called_once()
        mock_logfire.instrument_fastapi.assert_called_once_with(app=app)

    def test_skips_fastapi_without_app(self):
        with (
            patch(f"{MODULE}.LOGFIRE_ENABLED", True),
            patch(f"{MODULE}.LOGFIRE_TOKEN", "token"),
            patch(f"{MODULE}.logfire") as mock_logfire,
        ):
            initialize_logfire()

        mock_logfire.instrument_fastapi.assert_not_called()

    def test_instrumentation_failure_is_a_warning(self):
        with (
            patch(f"{MODULE}.LOGFIRE_ENABLED", True),
            patch(f"{MODULE}.LOGFIRE_TOKEN", "token"),
            patch(f"{MODULE}.logfire") as mock_logfire,
            patch(f"{MODULE}.logger") as mock_logger,
        ):
            mock_logfire.instrument_sqlalchemy.side_effect = RuntimeError("missing extra")
            assert initialize_logfire() is True

        assert any("SQLAlchemy" in call[0][0] for call in mock_logger.warning.call_args_list)

    @pytest.mark.parametrize("flag", ["LOGFIRE_TRACE_SQLALCHEMY", "LOGFIRE_TRACE_HTTPX"])
    def test_feature_flags(self, flag):
        with (
            patch(f"{MODULE}.LOGFIRE_ENABLED", True),
            patch(f"{MODULE}.LOGFIRE_TOKEN", "token"),
            patch(f"{MODULE}.{flag}", False),
            patch(f"{MODULE}.logfire") as mock_logfire,
        ):
            initialize_logfire()

        instrument = mock_logfire.instrument_sqlalchemy if flag.endswith("SQLALCHEMY") else mock_logfire.instrument_httpx
        instrument.assert_not_called()


class TestLogApiRequest:
    def test_sends_request_metrics(self):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            log_api_request("GET", "/api/learn/categories", 200, 12.5)

        mock_logfire.info.assert_called_once_with(
            "API request completed", method="GET", path="/api/learn/categories", status_code=200, duration_ms=12.5
        )

    def test_failure_is_swallowed(self):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            mock_logfire.info.side_effect = RuntimeError("exporter down")
            log_api_request("GET", "/health", 200, 1.0)


class TestLogError:
    def test_sends_context(self):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            log_error("ValueError", "bad", {"path": "/api/pay2"})

        kwargs = mock_logfire.error.call_args[1]
        assert (kwargs["error_type"], kwargs["error_message"], kwargs["path"]) == ("ValueError", "bad", "/api/pay2")

    def test_failure_is_swallowed(self):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            mock_logfire.error.side_effect = RuntimeError("exporter down")
            log_error("ValueError", "bad")


class TestTrackServerEvent:
    def test_drops_none_properties(self):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            track_server_event("user-1", "coupon_validated", {"code": "SMART10", "planId": None})

        kwargs = mock_logfire.info.call_args[1]
        assert kwargs["event"] == "coupon_validated"
        assert kwargs["distinct_id"] == "user-1"
        assert kwargs["code"] == "SMART10"
        assert "planId" not in kwargs

    def test_anonymous_user(self):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            track_server_event(None, "checkout_page_viewed")

        assert mock_logfire.info.call_args[1]["distinct_id"] == "anonymous"

    def test_failure_is_swallowed(self):
        mock_logfire = MagicMock()
        mock_logfire.info.side_effect = RuntimeError("exporter down")
        with patch(f"{MODULE}.logfire", mock_logfire):
            track_server_event("user-1", "payment_success", {"amount": 300})
