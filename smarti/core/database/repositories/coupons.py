"""
Coupon repository.

Lookup by code and redemption counting for discount coupons.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.billing import Coupon
from .base import SQLModelRepository


class CouponRepository(SQLModelRepository[Coupon]):
    """Repository for coupon data access operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Coupon)

    async def get_by_code(self, code: str) -> Optional[Coupon]:
        """Get a coupon by the exact code a user typed."""
        stmt = select(Coupon).where(Coupon.code == code).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_for_organization_year(self, organization_year_id: str) -> List[Coupon]:
        stmt = select(Coupon).where(Coupon.organization_year_id == organization_year_id).order_by(Coupon.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def deactivate(self, coupon: Coupon) -> Coupon:
        coupon.is_active = False
        return await self.update(coupon)

    async def register_use(self, coupon: Coupon, commit: bool = True) -> Coupon:
        """Count one redemption and deactivate the coupon once it is used up.

        Args:
            coupon: Coupon being redeemed
            commit: Commit immediately; pass False to batch with other writes

        Returns:
            The updated coupon
        """
        current = coupon.uses or 0
        if current < coupon.max_uses:
            coupon.uses = current + 1
            coupon.is_active = coupon.uses < coupon.max_uses
        else:
            coupon.is_active = False
        self.session.add(coupon)
        if commit:
            await self.session.commit()
            await self.session.refresh(coupon)
        return coupon
