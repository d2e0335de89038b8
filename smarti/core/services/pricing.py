"""
Price calculation shared by checkout, the free checkout and the payment callback.

Prices are whole shekels. Book add-on prices arrive as display strings such
as ``"₪120"`` and are parsed before use.
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from smarti.core.database.entities.billing import Plan
from smarti.core.database.repositories.coupons import CouponRepository
from smarti.core.models.domain.enums import CouponType


class CouponLike(Protocol):
    type: str
    value: int
    plan_id: Optional[str]


def parse_price(text: Optional[str]) -> int:
    """Keep the digits of a formatted price; 0 when there are none."""
    digits = re.sub(r"\D", "", text or "")
    return int(digits) if digits else 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def apply_coupon_to_price(base_price: int, coupon: Optional[CouponLike], plan_id: str) -> int:
    """Apply a coupon to ``base_price`` for ``plan_id``.

    Percentage coupons apply to any plan. Fixed and free coupons only apply
    when they were issued for ``plan_id``. The result never drops below 0.
    """
    if coupon is None:
        return base_price

    price = base_price
    if coupon.type == CouponType.percentage.value:
        price -= _round_half_up(price * coupon.value / 100)
    elif coupon.type == CouponType.fixed.value:
        if coupon.plan_id and coupon.plan_id == plan_id:
            price -= coupon.value
    elif coupon.type == CouponType.free.value:
        if coupon.plan_id and coupon.plan_id == plan_id:
            price = 0

    return max(price, 0)


def book_option(plan: Plan) -> Mapping[str, Any]:
    """The ``addBookOption`` block of the plan's display data, or an empty mapping."""
    display_data = plan.display_data or {}
    option = display_data.get("addBookOption") if isinstance(display_data, dict) else None
    return option if isinstance(option, dict) else {}


async def calculate_amount(
    session: AsyncSession,
    plan: Plan,
    coupon_id: Optional[str],
    book_included: bool,
) -> int:
    """Amount to charge for ``plan``, optionally with the book and a coupon.

    Args:
        session: Database session used to load the coupon
        plan: Plan being purchased
        coupon_id: Coupon to apply, ignored when it does not exist
        book_included: Add the plan's book option price

    Returns:
        Amount in whole shekels, never negative
    """
    price = plan.price
    if book_included:
        book_price = book_option(plan).get("price")
        if book_price:
            price += parse_price(str(book_price))

    if not coupon_id:
        return max(price, 0)

    coupon = await CouponRepository(session).get_by_id(coupon_id)
    if coupon is None:
        return max(price, 0)

    return apply_coupon_to_price(price, coupon, plan.id)
