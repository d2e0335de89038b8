"""
Onboarding system step.

Every learner studies in one of three system steps. Content, statistics,
coupons and settings are all scoped to a step. Signed-in users carry their
step on the user row; guests carry it in the ``systemStep`` cookie.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from smarti.core.database.base import utc_now_naive
from smarti.core.database.entities.users import UserSystemStats
from smarti.core.database.repositories.users import UserRepository, UserSystemStatsRepository
from smarti.core.models.domain.enums import VALID_SYSTEM_STEPS

logger = logging.getLogger(__name__)

STEP_LABELS = {
    1: "שלב א'",
    2: "שלב ב'",
    3: "כיתה ב' - שלב ג'",
}


class InvalidSystemStepError(ValueError):
    """Raised when a step outside 1-3 is requested."""


def is_valid_system_step(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value in VALID_SYSTEM_STEPS


def parse_system_step(value: Any) -> Optional[int]:
    """Return ``value`` as a valid step, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    step = int(number)
    return step if step in VALID_SYSTEM_STEPS else None


def get_default_system_step(today: Optional[date] = None) -> int:
    """Step 2 from December to April, step 1 otherwise."""
    today = today or utc_now_naive().date()
    return 2 if today.month >= 12 or today.month <= 4 else 1


def get_product_year(today: Optional[date] = None) -> str:
    """School year a purchase counts for, e.g. ``"2025 - 2026"``.

    January to May still belong to the school year that started the
    previous September.
    """
    today = today or utc_now_naive().date()
    if today.month <= 5:
        return f"{today.year - 1} - {today.year}"
    return f"{today.year} - {today.year + 1}"


def get_system_step_label(step: Optional[int]) -> str:
    return STEP_LABELS.get(step or 1, STEP_LABELS[1])


async def get_user_system_step(
    session: AsyncSession,
    user_id: Optional[str],
    cookie_value: Optional[str] = None,
    today: Optional[date] = None,
) -> int:
    """Resolve the step for a request.

    The stored step of a signed-in user wins, then the ``systemStep``
    cookie, then the seasonal default.
    """
    if user_id:
        user = await UserRepository(session).get_by_id(user_id)
        if user is not None and is_valid_system_step(user.system_step):
            return user.system_step

    cookie_step = parse_system_step(cookie_value)
    if cookie_step is not None:
        return cookie_step

    return get_default_system_step(today)


async def get_or_create_user_system_stats(
    session: AsyncSession, user_id: str, system_step: int
) -> Optional[UserSystemStats]:
    """Stats row of ``user_id`` for ``system_step``, created with zeros when missing.

    Returns None for an invalid step.
    """
    if not is_valid_system_step(system_step):
        return None

    repository = UserSystemStatsRepository(session)
    existing = await repository.get_for_step(user_id, system_step)
    if existing is not None:
        return existing

    stats = UserSystemStats(user_id=user_id, system_step=system_step, experience=0, genius_score=0)
    stats = await repository.create(stats)
    logger.debug(f"Created system stats for user {user_id} step {system_step}")
    return stats


async def set_user_system_step(session: AsyncSession, user_id: str, system_step: Any) -> int:
    """Persist ``system_step`` on the user and make sure stats exist for it.

    Raises:
        InvalidSystemStepError: The step is not 1, 2 or 3
    """
    step = parse_system_step(system_step)
    if step is None:
        raise InvalidSystemStepError("Invalid system step")

    users = UserRepository(session)
    user = await users.get_by_id(user_id)
    if user is not None:
        user.system_step = step
        await users.update(user)
    else:
        logger.warning(f"Cannot persist system step, user {user_id} does not exist")

    await get_or_create_user_system_stats(session, user_id, step)
    return step
