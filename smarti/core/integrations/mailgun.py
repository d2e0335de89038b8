"""Mailgun email client

Overview
--------
Thin async HTTP client for the Mailgun messages API. Messages are sent as a
form POST to ``{api_base}/v3/{domain}/messages`` with HTTP basic auth
``api:{token}``.

Errors
------
Any response other than 200/201 is raised as ``MailgunError`` carrying the
status code and the response body.

Usage
-----
>>> client = MailgunClient.from_config(settings.mailgun)
>>> await client.send_email("student@example.com", html, "Your book is ready")
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from smarti.server.core.config import MailgunConfig

logger = logging.getLogger(__name__)


class MailgunError(Exception):
    """Mailgun rejected a message.

    Args:
        message: Human-readable error description.
        status_code: HTTP status code returned by Mailgun.
        details: Response body.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class MailgunClient:
    """Send transactional emails through Mailgun."""

    def __init__(
        self,
        token: str,
        domain: str,
        sender: str,
        api_base: str = "https://api.eu.mailgun.net",
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Create a Mailgun client.

        Args:
            token: Mailgun API key.
            domain: Sending domain.
            sender: ``From`` address.
            api_base: Regional API base URL.
            timeout: HTTP timeout in seconds.
            transport: Optional transport, e.g. ``httpx.MockTransport`` in tests.
        """
        self.token = token
        self.domain = domain
        self.sender = sender
        self.api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: MailgunConfig, **kwargs: Any) -> "MailgunClient":
        return cls(config.token, config.domain, config.sender, config.api_base, **kwargs)

    @property
    def messages_url(self) -> str:
        return f"{self.api_base}/v3/{self.domain}/messages"

    async def send_email(self, to: str, html: str, subject: str, text: Optional[str] = None) -> Dict[str, Any]:
        """Send one HTML email.

        Returns:
            Mailgun's JSON response, e.g. ``{"id": ..., "message": "Queued. Thank you."}``

        Raises:
            MailgunError: Mailgun answered with a status above 201
        """
        data = {"from": self.sender, "to": to, "subject": subject, "html": html}
        if text:
            data["text"] = text

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(self.messages_url, auth=("api", self.token), data=data)

        if response.status_code > 201:
            logger.error(f"Mailgun rejected email to {to}: {response.status_code} {response.text}")
            raise MailgunError(
                f"Failed to send email: {response.status_code}", status_code=response.status_code, details=response.text
            )

        logger.info(f"Email sent to {to}: {subject}")
        return response.json()
