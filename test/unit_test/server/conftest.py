from typing import Any, AsyncGenerator, Callable, Dict, List, Optional
from unittest.mock import patch

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

TEST_JWT_KEY = "test-signing-key"


class RecordingMailer:
    """Stands in for the Mailgun client and keeps every message."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    async def send_email(self, to: str, html: str, subject: str, text: Optional[str] = None) -> Dict[str, Any]:
        self.sent.append({"to": to, "html": html, "subject": subject})
        return {"id": f"<{len(self.sent)}@test>", "message": "Queued. Thank you."}


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    """Build an ``Authorization`` header holding a session token for a user id."""

    def _headers(user_id: str) -> Dict[str, str]:
        token = jwt.encode({"sub": user_id}, TEST_JWT_KEY, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession, mailer: RecordingMailer) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and overridden dependencies."""
    from smarti.core.database.session import get_session
    from smarti.server.main import app
    from smarti.server.services.deps import get_document_store, get_mailer

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_document_store] = lambda: None

    # Mock the lifespan to prevent database initialization during tests
    async def mock_lifespan(app):
        yield

    with patch("smarti.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()
