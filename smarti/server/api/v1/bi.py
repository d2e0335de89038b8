"""
BI Dashboard Endpoints.

The sales dashboard is protected by a shared password. A correct password
sets an HTTP-only ``bi_access`` cookie that stays valid for a day.
"""

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Cookie, Query, Response
from fastapi.responses import JSONResponse

from smarti.core.database.base import utc_now_naive
from smarti.core.models.io.bi import BiLoginRequest
from smarti.core.services.bi_access import (
    COOKIE_NAME,
    MAX_AGE_SECONDS,
    check_password,
    create_bi_cookie_value,
    verify_bi_cookie,
)
from smarti.core.services.bi_insights import get_bi_insights, parse_range
from smarti.server.core.config import settings
from smarti.server.services.deps import SessionDep

router = APIRouter()

DEFAULT_RANGE_DAYS = 30


@router.post(
    "/login",
    summary="BI Login",
    description="Exchange the dashboard password for the access cookie.",
    responses={401: {"description": "Invalid password"}},
)
async def login(payload: BiLoginRequest, response: Response):
    password = settings.bi.password
    if not check_password(payload.password, password):
        return JSONResponse(status_code=401, content={"success": False, "error": "Invalid password"})

    response.set_cookie(
        COOKIE_NAME,
        create_bi_cookie_value(password),
        max_age=MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    return {"success": True}


@router.post("/logout", summary="BI Logout")
async def logout(response: Response):
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"success": True}


@router.get(
    "/insights",
    summary="Sales Insights",
    description="Revenue and transaction counts for ``[from, to]``; defaults to the last 30 days.",
    responses={401: {"description": "Missing or expired access cookie"}, 400: {"description": "Invalid date range"}},
)
async def insights(
    session: SessionDep,
    start: Optional[str] = Query(default=None, alias="from"),
    end: Optional[str] = Query(default=None, alias="to"),
    bi_access: Optional[str] = Cookie(default=None, alias=COOKIE_NAME),
):
    if not verify_bi_cookie(bi_access, settings.bi.password):
        return JSONResponse(status_code=401, content={"ok": False, "needsAuth": True})

    today = utc_now_naive().date()
    range_start, range_end = parse_range(
        start or (today - timedelta(days=DEFAULT_RANGE_DAYS)).isoformat(), end or today.isoformat()
    )
    data = await get_bi_insights(session, range_start, range_end)
    return {"ok": True, "data": data.model_dump(mode="json", by_alias=True)}
