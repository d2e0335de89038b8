"""
Client App Endpoints.

Endpoints the web and mobile clients call outside the learning flow: store
versions, feature flags, rating prompts, push tokens and feedback.
"""

from typing import Optional

from fastapi import APIRouter, Query, Request

from smarti.core.models.io.common import to_wire
from smarti.core.models.io.public import FeatureFlags, FeedbackSubmit, PublicSystemConfig
from smarti.core.services.client_app import (
    FEEDBACK_SENT_MESSAGE,
    get_public_system_config,
    parse_public_step,
    register_push_token,
    save_app_rating,
    submit_feedback,
)
from smarti.server.core.config import settings
from smarti.server.services.deps import CurrentUserDep, OptionalUserDep, SessionDep
from smarti.server.services.payload import read_json_object

router = APIRouter()


@router.get(
    "/system-config/public",
    response_model=PublicSystemConfig,
    response_model_by_alias=True,
    summary="Get Public System Config",
    description="Live store versions of the mobile app for a system step; null versions mean test mode.",
    responses={400: {"description": "systemStep is not 1, 2 or 3"}},
)
async def public_system_config(
    session: SessionDep, system_step: Optional[str] = Query(default=None, alias="systemStep")
) -> PublicSystemConfig:
    return await get_public_system_config(session, parse_public_step(system_step))


@router.get(
    "/config/features",
    response_model=FeatureFlags,
    response_model_by_alias=True,
    summary="Get Feature Flags",
)
async def feature_flags() -> FeatureFlags:
    return FeatureFlags(pwa_enabled=settings.features.pwa_enabled)


@router.post(
    "/app-ratings",
    summary="Save App Rating",
    description="Record what the user did with the in-app rating prompt.",
    responses={400: {"description": "Missing or invalid rating or action"}},
)
async def app_rating(request: Request, session: SessionDep, user_id: OptionalUserDep):
    body = await read_json_object(request)
    log = await save_app_rating(session, body, user_id)
    return {"success": True, "log": to_wire(log), "message": "Rating saved successfully"}


@router.post(
    "/push-notification-tokens",
    summary="Register Push Token",
    description="Register a device push token, or refresh the registration of a known token or device.",
    responses={400: {"description": "Missing or invalid token fields"}},
)
async def push_token(request: Request, session: SessionDep, user_id: OptionalUserDep):
    body = await read_json_object(request)
    record, created = await register_push_token(session, body, user_id)
    if created:
        message = "Token registered successfully" if record.user_id else "Token registered (userId will be added later)"
    else:
        message = "Token updated successfully" if record.user_id else "Token updated (userId will be added later)"
    return {"success": True, "token": to_wire(record), "message": message}


@router.post(
    "/feedbacks/submit",
    summary="Submit Feedback",
    description="Signed-in users send feedback about a screen, lesson or question.",
)
async def feedback(payload: FeedbackSubmit, session: SessionDep, user_id: CurrentUserDep):
    await submit_feedback(session, user_id, payload)
    return {"success": True, "message": FEEDBACK_SENT_MESSAGE}
