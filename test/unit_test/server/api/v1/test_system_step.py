import pytest
from httpx import AsyncClient

from smarti.core.database.entities import User
from smarti.core.database.repositories.users import UserSystemStatsRepository

pytestmark = pytest.mark.asyncio


async def test_signed_in_user_step_wins_over_cookie(client: AsyncClient, user, auth_headers):
    response = await client.get("/api/system-step", headers={**auth_headers(user.id), "Cookie": "systemStep=3"})

    assert response.status_code == 200
    body = response.json()
    assert body["systemStep"] == 1
    assert body["label"] == "שלב א'"
    assert " - " in body["productYear"]


async def test_guest_uses_cookie(client: AsyncClient):
    response = await client.get("/api/system-step", headers={"Cookie": "systemStep=3"})
    assert response.json()["systemStep"] == 3


async def test_set_step_for_guest_sets_cookie(client: AsyncClient):
    response = await client.post("/api/system-step", json={"systemStep": "2"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "systemStep": 2}
    assert "systemStep=2" in response.headers["set-cookie"]


async def test_set_step_for_user_persists_and_creates_stats(client: AsyncClient, session, user, auth_headers):
    response = await client.post("/api/system-step", json={"systemStep": 3}, headers=auth_headers(user.id))

    assert response.status_code == 200
    await session.refresh(user)
    assert user.system_step == 3
    stats = await UserSystemStatsRepository(session).get_for_step(user.id, 3)
    assert (stats.experience, stats.genius_score) == (0, 0)


@pytest.mark.parametrize("body", [{"systemStep": 4}, {"systemStep": "abc"}, {"systemStep": 1.5}, {}])
async def test_invalid_step(client: AsyncClient, body):
    response = await client.post("/api/system-step", json=body)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid system step"}


async def test_non_object_body(client: AsyncClient):
    response = await client.post("/api/system-step", json=[2])
    assert response.status_code == 400


async def test_unknown_user_still_gets_cookie(client: AsyncClient, session, auth_headers):
    response = await client.post("/api/system-step", json={"systemStep": 2}, headers=auth_headers("ghost"))
    assert response.status_code == 200
    assert await session.get(User, "ghost") is None
