"""
Caller Endpoints.

What the signed-in (or anonymous) caller may see and which products they hold.
"""

from fastapi import APIRouter

from smarti.core.models.io.public import SubscriptionStatus
from smarti.core.services.access import describe_access
from smarti.core.services.entitlements import check_is_pro, get_user_subscriptions
from smarti.core.services.system_step import get_user_system_step
from smarti.server.services.deps import CurrentUserDep, OptionalUserDep, SessionDep, SystemStepCookie

router = APIRouter()


@router.get(
    "/me/access",
    summary="Get Access Flags",
    description="Admin, full access and restricted flags plus the menu items to hide.",
)
async def get_access(user_id: OptionalUserDep):
    return describe_access(user_id)


@router.get(
    "/subscriptions/me",
    response_model=SubscriptionStatus,
    response_model_by_alias=True,
    summary="Get My Subscriptions",
    description="Product types the caller currently holds and whether the current step is unlocked.",
)
async def get_my_subscriptions(
    session: SessionDep,
    user_id: CurrentUserDep,
    system_step_cookie: SystemStepCookie = None,
) -> SubscriptionStatus:
    step = await get_user_system_step(session, user_id, system_step_cookie)
    product_types = await get_user_subscriptions(session, user_id)
    return SubscriptionStatus(
        product_types=sorted(product_types),
        is_pro=check_is_pro(product_types, user_id, step),
        system_step=step,
    )
