"""
Operations used by the web and mobile clients outside the learning flow.

Rating prompts, push token registration, feedback and the public system
config. Request bodies arrive as plain dicts because the mobile app sends
loosely typed JSON; each check fails with its own message.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from smarti.core.database.base import utc_now_naive
from smarti.core.database.entities.system import AppRatingLog, Feedback, PushNotificationToken, SystemConfig
from smarti.core.errors import MalformedPayloadError
from smarti.core.models.domain.enums import RatingAction
from smarti.core.models.io.public import FeedbackSubmit, PublicSystemConfig

from .system_step import is_valid_system_step

logger = logging.getLogger(__name__)

VALID_DEVICE_TYPES = ("ios", "android", "web")
MIN_PUSH_TOKEN_LENGTH = 20
FEEDBACK_SENT_MESSAGE = "הפידבק נשלח בהצלחה!"


async def save_app_rating(session: AsyncSession, body: Dict[str, Any], user_id: Optional[str] = None) -> AppRatingLog:
    """Store the outcome of the rating prompt.

    A rating of 0 is allowed for ``dismissed``; fractional ratings are
    rejected. The user comes from the token, or from the body for mobile
    requests.

    Raises:
        MalformedPayloadError: Rating or action is missing or invalid
    """
    rating = body.get("rating")
    action = body.get("action")
    if rating is None or not action:
        raise MalformedPayloadError("Missing required fields: rating and action are required")
    if isinstance(rating, bool) or not isinstance(rating, (int, float)) or rating < 0 or rating > 5:
        raise MalformedPayloadError("Rating must be a number between 0 and 5")
    # the column holds whole stars
    if isinstance(rating, float) and not rating.is_integer():
        raise MalformedPayloadError("Rating must be a number between 0 and 5")
    valid_actions = [item.value for item in RatingAction]
    if action not in valid_actions:
        raise MalformedPayloadError(f"Invalid action. Must be one of: {', '.join(valid_actions)}")

    log = AppRatingLog(
        user_id=user_id or body.get("userId") or None,
        rating=int(rating),
        feedback=body.get("feedback") or None,
        device_id=body.get("deviceId") or None,
        device_type=body.get("deviceType") or None,
        device_model=body.get("deviceModel") or None,
        app_version=body.get("appVersion") or None,
        action=action,
    )
    session.add(log)
    await session.commit()
    await session.refresh(log)
    return log


async def register_push_token(
    session: AsyncSession, body: Dict[str, Any], user_id: Optional[str] = None
) -> tuple[PushNotificationToken, bool]:
    """Register a device push token, or refresh the existing registration.

    The token may arrive before the user signs in; the user id is filled in
    by a later registration from the same device.

    Returns:
        The stored token and whether it was newly created
    """
    token = body.get("token")
    device_id = body.get("deviceId")
    device_type = body.get("deviceType")
    if not token or not device_id or not device_type:
        raise MalformedPayloadError("Missing required fields: token, deviceId, and deviceType are required")
    if device_type not in VALID_DEVICE_TYPES:
        raise MalformedPayloadError(f"Invalid deviceType. Must be one of: {', '.join(VALID_DEVICE_TYPES)}")
    if not isinstance(token, str) or len(token) < MIN_PUSH_TOKEN_LENGTH:
        raise MalformedPayloadError("Invalid token format")

    user_id = user_id or body.get("userId") or None
    stmt = select(PushNotificationToken).where(
        (PushNotificationToken.token == token) | (PushNotificationToken.device_id == device_id)
    )
    existing = (await session.execute(stmt)).scalars().first()

    if existing is None:
        record = PushNotificationToken(
            user_id=user_id,
            token=token,
            device_id=device_id,
            device_type=device_type,
            device_name=body.get("deviceName") or None,
            device_model=body.get("deviceModel") or None,
        )
        created = True
    else:
        record = existing
        record.token = token
        record.device_id = device_id
        record.device_type = device_type
        record.device_name = body.get("deviceName") or None
        record.device_model = body.get("deviceModel") or None
        record.is_active = True
        record.updated_at = utc_now_naive()
        if user_id:
            record.user_id = user_id
        created = False

    session.add(record)
    await session.commit()
    await session.refresh(record)
    logger.debug(f"Push token {'registered' if created else 'updated'} for device {device_id}")
    return record, created


async def submit_feedback(session: AsyncSession, user_id: str, payload: FeedbackSubmit) -> Feedback:
    feedback = Feedback(
        user_id=user_id,
        title=payload.title,
        description=payload.description,
        rate=payload.rating,
        screen_name=payload.screen_name,
        identify_number=payload.identifier,
    )
    session.add(feedback)
    await session.commit()
    await session.refresh(feedback)
    return feedback


def parse_public_step(value: Optional[str]) -> int:
    """``systemStep`` query value, 1 when absent."""
    if value is None or value == "":
        return 1
    try:
        step = int(value)
    except ValueError as exc:
        raise MalformedPayloadError("Invalid systemStep. Must be 1, 2, or 3") from exc
    if not is_valid_system_step(step):
        raise MalformedPayloadError("Invalid systemStep. Must be 1, 2, or 3")
    return step


async def get_public_system_config(session: AsyncSession, system_step: int) -> PublicSystemConfig:
    stmt = select(SystemConfig).where(SystemConfig.system_step == system_step).limit(1)
    config = (await session.execute(stmt)).scalars().first()
    if config is None:
        return PublicSystemConfig(system_step=system_step)
    return PublicSystemConfig(
        ios_version=config.ios_version,
        android_version=config.android_version,
        system_step=config.system_step,
    )
