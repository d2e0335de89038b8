from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from smarti.core.database.entities import Subscription

pytestmark = pytest.mark.asyncio


async def test_access_of_anonymous_caller(client: AsyncClient):
    response = await client.get("/api/me/access")
    body = response.json()
    assert body["userId"] is None
    assert body["isAdmin"] is False
    assert body["showAuthButtons"] is True
    assert body["hiddenMenuItems"] == []


async def test_access_of_restricted_user(client: AsyncClient, auth_headers):
    body = (await client.get("/api/me/access", headers=auth_headers("restricted-user"))).json()
    assert body["isRestricted"] is True
    assert body["showPwaPrompt"] is False
    assert "/shop" in body["hiddenMenuItems"]


async def test_access_of_admin(client: AsyncClient, auth_headers):
    body = (await client.get("/api/me/access", headers=auth_headers("admin-user"))).json()
    assert body["isAdmin"] is True


async def test_subscriptions_require_sign_in(client: AsyncClient):
    response = await client.get("/api/subscriptions/me")
    assert response.status_code == 401


async def test_active_subscription_unlocks_step(client: AsyncClient, persist, user, system_product, auth_headers):
    await persist(
        Subscription(user_id=user.id, product_id=system_product.id, system_until=datetime.utcnow() + timedelta(days=30))
    )

    response = await client.get("/api/subscriptions/me", headers=auth_headers(user.id))

    assert response.status_code == 200
    assert response.json() == {"productTypes": ["system1"], "isPro": True, "systemStep": 1}


async def test_expired_subscription(client: AsyncClient, persist, user, system_product, auth_headers):
    await persist(
        Subscription(user_id=user.id, product_id=system_product.id, system_until=datetime.utcnow() - timedelta(days=1))
    )
    body = (await client.get("/api/subscriptions/me", headers=auth_headers(user.id))).json()
    assert body["productTypes"] == [] and body["isPro"] is False


async def test_full_access_user(client: AsyncClient, auth_headers):
    headers = {**auth_headers("vip-user"), "Cookie": "systemStep=2"}
    body = (await client.get("/api/subscriptions/me", headers=headers)).json()
    assert body == {"productTypes": ["all"], "isPro": True, "systemStep": 2}
