"""
Application errors.

Services raise these; the server's exception handlers turn them into HTTP
responses. ``ApiError`` renders as JSON ``{"error": ...}``,
``PlainTextError`` as a plain-text body.
"""

from __future__ import annotations

from typing import Any, Optional


class SmartiError(Exception):
    """Base class for errors raised by Smarti services."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ApiError(SmartiError):
    """Error rendered as JSON ``{"error": message, "details": ...}``."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None) -> None:
        super().__init__(message, status_code)
        self.details = details


class MalformedPayloadError(ApiError):
    """The request body or parameters could not be understood."""

    status_code = 400


class NotFoundError(ApiError):
    status_code = 404


class PlainTextError(SmartiError):
    """Error rendered as a plain-text body, used by payment gateway callbacks."""


class AuthorizationError(PlainTextError):
    """Authentication (401) or authorization (403) failure."""

    status_code = 401
