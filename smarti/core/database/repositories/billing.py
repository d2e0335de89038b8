"""
Billing repositories.

Data access for plans, products, subscriptions, payment transactions and
book purchases.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.billing import BookPurchase, PaymentTransaction, Plan, Product, Subscription
from .base import SQLModelRepository


class PlanRepository(SQLModelRepository[Plan]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Plan)


class ProductRepository(SQLModelRepository[Product]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Product)

    async def get_many(self, product_ids: Sequence[str]) -> List[Product]:
        if not product_ids:
            return []
        stmt = select(Product).where(Product.id.in_(list(product_ids)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class SubscriptionRepository(SQLModelRepository[Subscription]):
    """Repository for granted subscriptions."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Subscription)

    async def active_product_types(self, user_id: str, now: datetime) -> List[str]:
        """Product types of subscriptions still valid at ``now``."""
        stmt = (
            select(Product.product_type)
            .join(Subscription, Subscription.product_id == Product.id)
            .where(
                Subscription.user_id == user_id,
                Subscription.system_until.is_not(None),
                Subscription.system_until > now,
            )
        )
        result = await self.session.execute(stmt)
        return [row for row in result.scalars().all() if row]

    async def exists_for_transaction(self, transaction_id: str) -> bool:
        stmt = select(Subscription.id).where(Subscription.payment_transaction_id == transaction_id).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first() is not None


class PaymentTransactionRepository(SQLModelRepository[PaymentTransaction]):
    """Repository for payment transactions."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, PaymentTransaction)

    async def in_range(self, start: datetime, end: datetime) -> List[PaymentTransaction]:
        """Transactions created in ``[start, end)``, newest first."""
        stmt = (
            select(PaymentTransaction)
            .where(PaymentTransaction.created_at >= start, PaymentTransaction.created_at < end)
            .order_by(PaymentTransaction.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class BookPurchaseRepository(SQLModelRepository[BookPurchase]):
    """Repository for purchased books."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, BookPurchase)

    async def get_valid(self, user_id: str, product_id: str, now: datetime) -> Optional[BookPurchase]:
        """A purchase of ``product_id`` by ``user_id`` still valid at ``now``."""
        stmt = (
            select(BookPurchase)
            .where(
                BookPurchase.user_id == user_id,
                BookPurchase.product_id == product_id,
                BookPurchase.valid_until.is_not(None),
                BookPurchase.valid_until > now,
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_for_transaction(self, transaction_id: str, product_id: str) -> Optional[BookPurchase]:
        stmt = (
            select(BookPurchase)
            .where(BookPurchase.payment_transaction_id == transaction_id, BookPurchase.product_id == product_id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()
