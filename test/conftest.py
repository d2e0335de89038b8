from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

import httpx
import pytest
from dotenv import load_dotenv

TEST_ROOT = Path(__file__).resolve().parent

# The application settings and the database engine are built at import time,
# so the test environment has to be in place before anything imports smarti.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_JWT_KEY"] = "test-signing-key"
os.environ["AUTH_JWT_ALGORITHMS"] = '["HS256"]'
os.environ["ADMIN_USER_IDS"] = '["admin-user"]'
os.environ["FULL_ACCESS_USER_IDS"] = '["vip-user"]'
os.environ["RESTRICTED_USER_IDS"] = '["restricted-user"]'
os.environ["YAAD_TOKEN"] = "test-gateway-token"
os.environ["BI_PASSWORD"] = "test-bi-password"
os.environ["NEXT_PUBLIC_APP_URL"] = "http://localhost:3000"
os.environ["GCS_BUCKET_NAME"] = "smarti-books-test"
os.environ["LOGFIRE_ENABLED"] = "false"

load_dotenv(TEST_ROOT / ".env", override=False)


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://test",
        "/",  # Allow relative paths (used by ASGI transport)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(client, url_str: str) -> bool:
        # Clients built around a MockTransport never leave the process
        if isinstance(getattr(client, "_transport", None), httpx.MockTransport):
            return True
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(self, url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(self, url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
