"""Unit tests for system step resolution and persistence."""

from __future__ import annotations

from datetime import date

import pytest

from smarti.core.database.entities import User
from smarti.core.database.repositories.users import UserRepository, UserSystemStatsRepository
from smarti.core.services.system_step import (
    InvalidSystemStepError,
    get_default_system_step,
    get_or_create_user_system_stats,
    get_product_year,
    get_system_step_label,
    get_user_system_step,
    is_valid_system_step,
    parse_system_step,
    set_user_system_step,
)


class TestParsing:
    @pytest.mark.parametrize("value, expected", [(1, 1), ("2", 2), (3.0, 3), ("3", 3)])
    def test_valid(self, value, expected):
        assert parse_system_step(value) == expected

    @pytest.mark.parametrize("value", [None, 0, 4, "x", "1.5", 2.5, True, ""])
    def test_invalid(self, value):
        assert parse_system_step(value) is None

    def test_is_valid_requires_int(self):
        assert is_valid_system_step(2)
        assert not is_valid_system_step("2")
        assert not is_valid_system_step(True)


class TestSeasonalDefaults:
    @pytest.mark.parametrize("month, expected", [(1, 2), (4, 2), (5, 1), (9, 1), (11, 1), (12, 2)])
    def test_default_step(self, month, expected):
        assert get_default_system_step(date(2025, month, 10)) == expected

    def test_product_year_before_june(self):
        assert get_product_year(date(2026, 5, 31)) == "2025 - 2026"

    def test_product_year_from_june(self):
        assert get_product_year(date(2026, 6, 1)) == "2026 - 2027"

    def test_label_falls_back_to_first_step(self):
        assert get_system_step_label(3) == "כיתה ב' - שלב ג'"
        assert get_system_step_label(None) == get_system_step_label(1)


@pytest.mark.asyncio
class TestUserSystemStep:
    async def test_stored_step_wins_over_cookie(self, session, user):
        assert await get_user_system_step(session, user.id, "3") == 1

    async def test_cookie_used_for_guests(self, session):
        assert await get_user_system_step(session, None, "3") == 3

    async def test_user_without_step_falls_back_to_cookie(self, session, persist):
        await persist(User(id="fresh", name="Fresh"))
        assert await get_user_system_step(session, "fresh", "2") == 2

    async def test_invalid_cookie_uses_seasonal_default(self, session):
        assert await get_user_system_step(session, None, "9", today=date(2025, 1, 10)) == 2

    async def test_set_step_persists_and_creates_stats(self, session, user):
        assert await set_user_system_step(session, user.id, "3") == 3

        stored = await UserRepository(session).get_by_id(user.id)
        assert stored.system_step == 3
        stats = await UserSystemStatsRepository(session).get_for_step(user.id, 3)
        assert stats is not None
        assert (stats.experience, stats.genius_score) == (0, 0)

    async def test_set_invalid_step_raises(self, session, user):
        with pytest.raises(InvalidSystemStepError):
            await set_user_system_step(session, user.id, 5)

    async def test_stats_are_created_once(self, session, user):
        first = await get_or_create_user_system_stats(session, user.id, 1)
        second = await get_or_create_user_system_stats(session, user.id, 1)
        assert first.id == second.id

    async def test_stats_for_invalid_step(self, session, user):
        assert await get_or_create_user_system_stats(session, user.id, 7) is None
