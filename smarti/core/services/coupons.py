"""
Coupon validation and the coupon a user saved for checkout.

A coupon is valid when it exists, belongs to the requested system step (if
one is given), is active, is inside its validity window and still has uses
left. A coupon found used up is deactivated on the spot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from smarti.core.database.base import utc_now_naive
from smarti.core.database.entities.billing import Coupon
from smarti.core.database.entities.users import DEFAULT_AVATAR, UserSettings
from smarti.core.database.repositories.coupons import CouponRepository
from smarti.core.database.repositories.users import UserSettingsRepository

logger = logging.getLogger(__name__)

COUPON_NOT_FOUND = "קופון לא נמצא"
COUPON_WRONG_STEP = "קופון לא תקף לשלב זה"
COUPON_INACTIVE = "קופון לא פעיל"
COUPON_NOT_YET_VALID = "קופון עדיין לא תקף"
COUPON_EXPIRED = "קופון פג תוקף"
COUPON_USED_UP = "קופון הגיע למספר השימושים המקסימלי"
COUPON_INVALID = "קופון לא תקף"


@dataclass
class CouponValidation:
    """Outcome of validating a coupon code."""

    valid: bool
    coupon: Optional[Coupon] = None
    error: Optional[str] = None


@dataclass
class CouponSaveResult:
    success: bool
    error: Optional[str] = None


async def get_coupon(
    session: AsyncSession, coupon_id: Optional[str] = None, code: Optional[str] = None
) -> Optional[Coupon]:
    """Look a coupon up by id or by code."""
    repository = CouponRepository(session)
    if coupon_id is not None:
        return await repository.get_by_id(coupon_id)
    if code is not None:
        return await repository.get_by_code(code)
    raise ValueError("Either coupon_id or code is required")


async def validate_coupon(
    session: AsyncSession,
    code: str,
    system_step: Optional[int] = None,
    now: Optional[datetime] = None,
) -> CouponValidation:
    """Validate ``code``, optionally against a system step.

    Checks run in order: existence, step, active flag, start date, end date
    and remaining uses. The first failing check decides the error message.
    """
    repository = CouponRepository(session)
    coupon = await repository.get_by_code(code)
    if coupon is None:
        return CouponValidation(valid=False, coupon=None, error=COUPON_NOT_FOUND)

    if system_step is not None and coupon.system_step != system_step:
        return CouponValidation(valid=False, coupon=coupon, error=COUPON_WRONG_STEP)

    now = now or utc_now_naive()

    if not coupon.is_active:
        return CouponValidation(valid=False, coupon=coupon, error=COUPON_INACTIVE)

    if now < coupon.valid_from:
        return CouponValidation(valid=False, coupon=coupon, error=COUPON_NOT_YET_VALID)

    if now > coupon.valid_until:
        return CouponValidation(valid=False, coupon=coupon, error=COUPON_EXPIRED)

    if (coupon.uses or 0) >= coupon.max_uses:
        coupon = await repository.deactivate(coupon)
        logger.info(f"Coupon {coupon.code} reached its maximum uses and was deactivated")
        return CouponValidation(valid=False, coupon=coupon, error=COUPON_USED_UP)

    return CouponValidation(valid=True, coupon=coupon)


async def get_user_saved_coupon(
    session: AsyncSession, user_id: str, system_step: int, now: Optional[datetime] = None
) -> Optional[Coupon]:
    """The coupon saved in the user's settings for ``system_step``.

    A saved coupon that is no longer valid is cleared and None is returned.
    """
    settings_repository = UserSettingsRepository(session)
    user_settings = await settings_repository.get_for_step(user_id, system_step)
    if user_settings is None or not user_settings.saved_coupon_id:
        return None

    coupon = await CouponRepository(session).get_by_id(user_settings.saved_coupon_id)
    if coupon is None:
        return None

    validation = await validate_coupon(session, coupon.code, system_step, now=now)
    if not validation.valid:
        user_settings.saved_coupon_id = None
        await settings_repository.update(user_settings)
        logger.info(f"Cleared invalid saved coupon for user {user_id}: {validation.error}")
        return None

    return coupon


async def save_user_coupon(
    session: AsyncSession,
    user_id: str,
    coupon_id: str,
    system_step: int,
    now: Optional[datetime] = None,
) -> CouponSaveResult:
    """Save a valid coupon in the user's settings for ``system_step``.

    Settings missing for the step are created, copying preferences from the
    user's settings of another step when there are any.
    """
    coupon = await CouponRepository(session).get_by_id(coupon_id)
    if coupon is None:
        return CouponSaveResult(success=False, error=COUPON_NOT_FOUND)

    validation = await validate_coupon(session, coupon.code, system_step, now=now)
    if not validation.valid:
        return CouponSaveResult(success=False, error=validation.error or COUPON_INVALID)

    repository = UserSettingsRepository(session)
    existing = await repository.get_for_step(user_id, system_step)
    if existing is not None:
        existing.saved_coupon_id = coupon_id
        await repository.update(existing)
        return CouponSaveResult(success=True)

    template = await repository.get_any(user_id)
    await repository.create(
        UserSettings(
            user_id=user_id,
            system_step=system_step,
            saved_coupon_id=coupon_id,
            lesson_clock=template.lesson_clock if template else True,
            quiz_clock=template.quiz_clock if template else True,
            immediate_result=template.immediate_result if template else False,
            grade_class=template.grade_class if template else None,
            gender=template.gender if template else None,
            avatar=(template.avatar if template and template.avatar else DEFAULT_AVATAR),
        )
    )
    return CouponSaveResult(success=True)


async def clear_user_coupon(session: AsyncSession, user_id: str, system_step: int) -> None:
    repository = UserSettingsRepository(session)
    user_settings = await repository.get_for_step(user_id, system_step)
    if user_settings is not None and user_settings.saved_coupon_id:
        user_settings.saved_coupon_id = None
        await repository.update(user_settings)
