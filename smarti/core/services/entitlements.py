"""
Subscription windows and premium gating.

A subscription grants one product (``system1``, ``system2``, ``system3``,
``book1`` ...) until ``system_until``. A user is "pro" in a step when a
valid subscription covers that step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence, Set

from sqlalchemy.ext.asyncio import AsyncSession

from smarti.core.database.base import utc_now_naive
from smarti.core.database.entities.billing import Subscription
from smarti.core.database.repositories.billing import SubscriptionRepository
from smarti.core.database.repositories.coupons import CouponRepository

from .access import has_full_access

logger = logging.getLogger(__name__)

ALL_PRODUCTS = "all"
BOOK_VALIDITY_DAYS = 365


@dataclass
class SubscriptionItem:
    """A subscription to grant once a transaction is paid."""

    user_id: str
    product_id: str
    coupon_id: Optional[str]
    payment_transaction_id: str
    system_until: datetime
    system_step: int


def subscription_window(now: datetime, days: int) -> datetime:
    """Expiry of a subscription starting at ``now`` and lasting ``days`` days."""
    return now + timedelta(days=days)


async def get_user_subscriptions(
    session: AsyncSession, user_id: Optional[str], now: Optional[datetime] = None
) -> Set[str]:
    """Product types the user currently holds.

    Full access users hold ``{"all"}``. Anonymous users hold nothing.
    """
    if not user_id:
        return set()
    if has_full_access(user_id):
        return {ALL_PRODUCTS}
    now = now or utc_now_naive()
    product_types = await SubscriptionRepository(session).active_product_types(user_id, now)
    return set(product_types)


def check_is_pro(subscriptions: Optional[Iterable[str]], user_id: Optional[str], system_step: int) -> bool:
    """Whether ``subscriptions`` unlock premium content in ``system_step``."""
    held = set(subscriptions or ())
    if not held:
        return False
    if has_full_access(user_id):
        return True
    if ALL_PRODUCTS in held:
        return True
    return f"system{system_step}" in held


async def create_subscriptions_if_missing(
    session: AsyncSession, items: Sequence[SubscriptionItem], transaction_id: str
) -> bool:
    """Insert ``items`` for ``transaction_id`` unless it already has subscriptions.

    Every distinct coupon used by the items is redeemed once, in the same
    commit as the inserts.

    Returns:
        True when subscriptions were inserted
    """
    if not items:
        return False

    subscriptions = SubscriptionRepository(session)
    if await subscriptions.exists_for_transaction(transaction_id):
        logger.info(f"Subscriptions already exist for transaction {transaction_id}")
        return False

    coupons = CouponRepository(session)
    for coupon_id in sorted({item.coupon_id for item in items if item.coupon_id}):
        coupon = await coupons.get_by_id(coupon_id)
        if coupon is not None:
            await coupons.register_use(coupon, commit=False)

    await subscriptions.add_all(
        [
            Subscription(
                user_id=item.user_id,
                product_id=item.product_id,
                coupon_id=item.coupon_id,
                payment_transaction_id=item.payment_transaction_id,
                system_until=item.system_until,
                system_step=item.system_step,
            )
            for item in items
        ]
    )
    logger.info(f"Created {len(items)} subscriptions for transaction {transaction_id}")
    return True
