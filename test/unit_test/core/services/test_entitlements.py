"""Unit tests for subscriptions and premium gating."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from smarti.core.database.entities import Subscription
from smarti.core.database.repositories.billing import SubscriptionRepository
from smarti.core.database.repositories.coupons import CouponRepository
from smarti.core.services.entitlements import (
    ALL_PRODUCTS,
    SubscriptionItem,
    check_is_pro,
    create_subscriptions_if_missing,
    get_user_subscriptions,
    subscription_window,
)


def test_subscription_window():
    assert subscription_window(datetime(2025, 1, 1), 365) == datetime(2026, 1, 1)


class TestCheckIsPro:
    def test_nothing_held(self):
        assert not check_is_pro(set(), "user-1", 1)
        assert not check_is_pro(None, "user-1", 1)

    def test_step_product(self):
        assert check_is_pro({"system2"}, "user-1", 2)
        assert not check_is_pro({"system2"}, "user-1", 1)

    def test_books_do_not_unlock_steps(self):
        assert not check_is_pro({"book1"}, "user-1", 1)

    def test_all_products(self):
        assert check_is_pro({ALL_PRODUCTS}, "user-1", 3)

    def test_full_access_user(self):
        assert check_is_pro({"book1"}, "vip-user", 3)


@pytest.mark.asyncio
class TestSubscriptions:
    async def test_anonymous(self, session):
        assert await get_user_subscriptions(session, None) == set()

    async def test_full_access(self, session):
        assert await get_user_subscriptions(session, "vip-user") == {ALL_PRODUCTS}

    async def test_only_unexpired_subscriptions_count(self, session, user, system_product, book_product, persist, now):
        await persist(
            Subscription(user_id=user.id, product_id=system_product.id, system_until=now + timedelta(days=1)),
            Subscription(user_id=user.id, product_id=book_product.id, system_until=now - timedelta(days=1)),
        )
        assert await get_user_subscriptions(session, user.id, now=now) == {"system1"}

    async def test_create_once_per_transaction(self, session, user, system_product, make_coupon, now):
        coupon = await make_coupon(uses=0, max_uses=1)
        items = [
            SubscriptionItem(
                user_id=user.id,
                product_id=system_product.id,
                coupon_id=coupon.id,
                payment_transaction_id="tx-1",
                system_until=now + timedelta(days=365),
                system_step=1,
            )
        ]

        assert await create_subscriptions_if_missing(session, items, "tx-1") is True
        assert await create_subscriptions_if_missing(session, items, "tx-1") is False

        rows = await SubscriptionRepository(session).list(filters={"payment_transaction_id": "tx-1"})
        assert len(rows) == 1
        redeemed = await CouponRepository(session).get_by_id(coupon.id)
        assert (redeemed.uses, redeemed.is_active) == (1, False)

    async def test_create_nothing(self, session):
        assert await create_subscriptions_if_missing(session, [], "tx-2") is False
