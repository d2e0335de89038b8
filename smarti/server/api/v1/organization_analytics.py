"""
Organization Analytics Endpoints.

Managers of schools and other organizations see how their members practice
and how the organization's coupon was redeemed.
"""

from typing import Optional

from fastapi import APIRouter, Query

from smarti.core.services.organization_analytics import (
    get_managed_organizations,
    get_member_mistakes,
    get_organization_coupon_summary,
    get_organization_mistakes,
    get_organization_users,
)
from smarti.server.services.deps import CurrentUserDep, SessionDep

router = APIRouter()


@router.get(
    "/managed",
    summary="Managed Organizations",
    description="Organizations the caller manages with this month's activity per organization year.",
    responses={403: {"description": "The caller manages no organization"}},
)
async def managed(session: SessionDep, user_id: CurrentUserDep):
    return await get_managed_organizations(session, user_id)


@router.get(
    "/{organization_id}/coupons",
    summary="Organization Coupon Summary",
    description="Usage of the coupon an organization year distributes.",
    responses={
        400: {"description": "organizationYearId is missing"},
        403: {"description": "The caller does not manage the organization"},
        404: {"description": "The year has no coupon"},
    },
)
async def coupon_summary(
    organization_id: str,
    session: SessionDep,
    user_id: CurrentUserDep,
    organization_year_id: Optional[str] = Query(default=None, alias="organizationYearId"),
):
    return await get_organization_coupon_summary(session, user_id, organization_id, organization_year_id)


@router.get(
    "/{organization_id}/users",
    summary="Organization Members",
    description="Members of the organization with this month's lessons, questions, correct answers and average score.",
    responses={403: {"description": "The caller does not manage the organization"}},
)
async def organization_users(organization_id: str, session: SessionDep, user_id: CurrentUserDep):
    return await get_organization_users(session, user_id, organization_id)


@router.get(
    "/{organization_id}/mistakes",
    summary="Organization Mistakes",
    description="Wrong answers of the organization's members grouped by topic type.",
    responses={403: {"description": "The caller does not manage the organization"}},
)
async def organization_mistakes(
    organization_id: str,
    session: SessionDep,
    user_id: CurrentUserDep,
    organization_year_id: Optional[str] = Query(default=None, alias="organizationYearId"),
):
    return await get_organization_mistakes(session, user_id, organization_id, organization_year_id)


@router.get(
    "/{organization_id}/users/mistakes",
    summary="Members Mistakes",
    description="Wrong answers of all members grouped by topic type.",
    responses={403: {"description": "The caller does not manage the organization"}},
)
async def members_mistakes(
    organization_id: str,
    session: SessionDep,
    user_id: CurrentUserDep,
    organization_year_id: Optional[str] = Query(default=None, alias="organizationYearId"),
):
    return await get_organization_mistakes(session, user_id, organization_id, organization_year_id)


@router.get(
    "/{organization_id}/users/{member_id}/mistakes",
    summary="Member Mistakes",
    description="Wrong answers of one member grouped by lesson category and topic type.",
    responses={403: {"description": "The caller does not manage the organization"}},
)
async def member_mistakes(
    organization_id: str,
    member_id: str,
    session: SessionDep,
    user_id: CurrentUserDep,
    organization_year_id: Optional[str] = Query(default=None, alias="organizationYearId"),
):
    return await get_member_mistakes(session, user_id, organization_id, member_id, organization_year_id)
