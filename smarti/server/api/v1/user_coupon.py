"""
User Coupon Endpoints.

Public validation of a coupon code and the coupon a signed-in user saved
for their next checkout.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from smarti.core.errors import MalformedPayloadError
from smarti.core.models.io.common import to_wire
from smarti.core.monitoring import track_server_event
from smarti.core.services.coupons import (
    COUPON_INVALID,
    clear_user_coupon,
    get_user_saved_coupon,
    save_user_coupon,
    validate_coupon,
)
from smarti.core.services.system_step import get_user_system_step
from smarti.server.services.deps import CurrentUserDep, OptionalUserDep, SessionDep, SystemStepCookie
from smarti.server.services.payload import read_json_object

router = APIRouter()


async def _read_code(request: Request) -> str:
    body = await read_json_object(request)
    code = body.get("code")
    if not code or not isinstance(code, str):
        raise MalformedPayloadError("Invalid coupon code")
    return code.strip()


@router.post(
    "/validate",
    summary="Validate Coupon",
    description="Check a coupon code. Signed-in callers are checked against their system step.",
    responses={400: {"description": "Missing or non-string code"}},
)
async def validate(
    request: Request,
    session: SessionDep,
    user_id: OptionalUserDep,
    system_step_cookie: SystemStepCookie = None,
):
    code = await _read_code(request)
    step = await get_user_system_step(session, user_id, system_step_cookie) if user_id else None
    validation = await validate_coupon(session, code, step)
    track_server_event(
        user_id,
        "coupon_validated",
        {"code": code, "valid": validation.valid, "systemStep": step, "error": validation.error},
    )
    return {"valid": validation.valid, "coupon": to_wire(validation.coupon), "error": validation.error}


@router.get("", summary="Get Saved Coupon")
async def get_saved_coupon(
    session: SessionDep,
    user_id: CurrentUserDep,
    system_step_cookie: SystemStepCookie = None,
):
    step = await get_user_system_step(session, user_id, system_step_cookie)
    coupon = await get_user_saved_coupon(session, user_id, step)
    return {"coupon": to_wire(coupon)}


@router.post(
    "",
    summary="Save Coupon",
    description="Validate a coupon code and save it for the caller's next checkout.",
    responses={400: {"description": "Invalid coupon"}},
)
async def save_coupon(
    request: Request,
    session: SessionDep,
    user_id: CurrentUserDep,
    system_step_cookie: SystemStepCookie = None,
):
    code = await _read_code(request)
    step = await get_user_system_step(session, user_id, system_step_cookie)
    validation = await validate_coupon(session, code, step)
    if not validation.valid or validation.coupon is None:
        return JSONResponse(
            status_code=400,
            content={"error": validation.error or COUPON_INVALID, "coupon": None},
        )

    result = await save_user_coupon(session, user_id, validation.coupon.id, step)
    if not result.success:
        return JSONResponse(status_code=400, content={"error": result.error})
    return {"success": True, "coupon": to_wire(validation.coupon)}


@router.delete("", summary="Clear Saved Coupon")
async def clear_saved_coupon(
    session: SessionDep,
    user_id: CurrentUserDep,
    system_step_cookie: SystemStepCookie = None,
):
    step = await get_user_system_step(session, user_id, system_step_cookie)
    await clear_user_coupon(session, user_id, step)
    return {"success": True}
