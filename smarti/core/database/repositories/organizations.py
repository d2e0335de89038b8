"""
Organization repositories.

Organizations, their school years and the users who joined through them.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.organizations import OrganizationInfo, OrganizationYear
from ..entities.results import UserLessonResult
from ..entities.users import User
from .base import SQLModelRepository


class OrganizationInfoRepository(SQLModelRepository[OrganizationInfo]):
    """Repository for organizations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, OrganizationInfo)

    async def get_many(self, organization_ids: Sequence[str]) -> List[OrganizationInfo]:
        if not organization_ids:
            return []
        stmt = select(OrganizationInfo).where(OrganizationInfo.id.in_(list(organization_ids)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class OrganizationYearRepository(SQLModelRepository[OrganizationYear]):
    """Repository for organization years."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, OrganizationYear)

    async def for_organization(
        self, organization_id: str, organization_year_id: Optional[str] = None
    ) -> List[OrganizationYear]:
        """Years of an organization, newest first, optionally only ``organization_year_id``."""
        stmt = select(OrganizationYear).where(OrganizationYear.organization_id == organization_id)
        if organization_year_id:
            stmt = stmt.where(OrganizationYear.id == organization_year_id)
        stmt = stmt.order_by(OrganizationYear.year.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def members(self, organization_year_ids: Sequence[str]) -> List[User]:
        """Users who joined through any of the given years."""
        if not organization_year_ids:
            return []
        stmt = select(User).where(User.organization_year_id.in_(list(organization_year_ids))).order_by(User.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def lesson_results(self, user_ids: Sequence[str], start: datetime, end: datetime) -> List[UserLessonResult]:
        """Lesson results of the given users created in ``[start, end)``."""
        if not user_ids:
            return []
        stmt = select(UserLessonResult).where(
            UserLessonResult.user_id.in_(list(user_ids)),
            UserLessonResult.created_at >= start,
            UserLessonResult.created_at < end,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
