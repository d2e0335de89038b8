"""
System Step Endpoints.

The system step selects which exam track (1-3) the learner is preparing for.
Anonymous visitors keep it in a cookie; signed-in users also have it stored.
"""

from fastapi import APIRouter, Request, Response

from smarti.core.errors import MalformedPayloadError
from smarti.core.models.io.public import SystemStepInfo
from smarti.core.services.system_step import (
    InvalidSystemStepError,
    get_product_year,
    get_system_step_label,
    get_user_system_step,
    parse_system_step,
    set_user_system_step,
)
from smarti.server.core import constant
from smarti.server.core.config import settings
from smarti.server.services.deps import OptionalUserDep, SessionDep, SystemStepCookie
from smarti.server.services.payload import read_json_object

router = APIRouter()


@router.get(
    "",
    response_model=SystemStepInfo,
    response_model_by_alias=True,
    summary="Get System Step",
    description="Resolve the caller's system step from the stored value, the cookie or the season.",
)
async def get_system_step(
    session: SessionDep,
    user_id: OptionalUserDep,
    system_step_cookie: SystemStepCookie = None,
) -> SystemStepInfo:
    step = await get_user_system_step(session, user_id, system_step_cookie)
    return SystemStepInfo(system_step=step, label=get_system_step_label(step), product_year=get_product_year())


@router.post(
    "",
    summary="Set System Step",
    description="Store the system step in a cookie and, for signed-in users, on the user.",
    responses={400: {"description": "Invalid system step"}},
)
async def set_system_step(request: Request, response: Response, session: SessionDep, user_id: OptionalUserDep):
    body = await read_json_object(request)
    step = parse_system_step(body.get("systemStep"))
    if step is None:
        raise MalformedPayloadError("Invalid system step")

    if user_id:
        try:
            await set_user_system_step(session, user_id, step)
        except InvalidSystemStepError as e:
            raise MalformedPayloadError(str(e)) from e

    response.set_cookie(
        constant.SYSTEM_STEP_COOKIE,
        str(step),
        max_age=constant.SYSTEM_STEP_COOKIE_MAX_AGE,
        path="/",
        samesite="lax",
        secure=settings.is_production,
    )
    return {"success": True, "systemStep": step}
