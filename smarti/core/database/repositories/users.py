"""
User repositories.

Data access for users, their per step settings and per step statistics.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.users import User, UserSettings, UserSystemStats
from .base import SQLModelRepository


class UserRepository(SQLModelRepository[User]):
    """Repository for users."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)


class UserSettingsRepository(SQLModelRepository[UserSettings]):
    """Repository for per step user settings."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, UserSettings)

    async def get_for_step(self, user_id: str, system_step: int) -> Optional[UserSettings]:
        stmt = (
            select(UserSettings)
            .where(UserSettings.user_id == user_id, UserSettings.system_step == system_step)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_any(self, user_id: str) -> Optional[UserSettings]:
        """Get settings of any step, used as a template for a new step."""
        stmt = select(UserSettings).where(UserSettings.user_id == user_id).order_by(UserSettings.system_step.desc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()


class UserSystemStatsRepository(SQLModelRepository[UserSystemStats]):
    """Repository for per step experience and genius score."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, UserSystemStats)

    async def get_for_step(self, user_id: str, system_step: int) -> Optional[UserSystemStats]:
        stmt = (
            select(UserSystemStats)
            .where(UserSystemStats.user_id == user_id, UserSystemStats.system_step == system_step)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def ranked(self, system_step: int, limit: Optional[int] = None) -> List[UserSystemStats]:
        """Stats of a step ordered by experience, ties broken by user id."""
        stmt = (
            select(UserSystemStats)
            .where(UserSystemStats.system_step == system_step)
            .order_by(UserSystemStats.experience.desc(), UserSystemStats.user_id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
