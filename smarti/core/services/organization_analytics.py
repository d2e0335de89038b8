"""
Analytics for organization managers.

A user manages the organizations listed in ``managed_organization``. For
each organization year managers see how many members joined, how many of
them practiced this month, and the coupon the organization distributes.
Per member reports show this month's practice and which topics members
answer wrong most often.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from smarti.core.database.base import utc_now_naive
from smarti.core.database.entities.billing import Subscription
from smarti.core.database.entities.users import User, UserSystemStats
from smarti.core.database.repositories.coupons import CouponRepository
from smarti.core.database.repositories.learning import UserWrongQuestionRepository
from smarti.core.database.repositories.organizations import OrganizationInfoRepository, OrganizationYearRepository
from smarti.core.database.repositories.users import UserRepository
from smarti.core.errors import AuthorizationError, PlainTextError

ACCESS_DENIED = "Access denied"
UNKNOWN_TOPIC = "UNKNOWN"


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """``[first day of this month, first day of next month)``."""
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        return start, datetime(now.year + 1, 1, 1)
    return start, datetime(now.year, now.month + 1, 1)


async def get_manager(session: AsyncSession, user_id: str) -> User:
    """Load a user that manages at least one organization.

    Raises:
        AuthorizationError: 403 when the user manages nothing
    """
    user = await UserRepository(session).get_by_id(user_id)
    if user is None or not user.managed_organization:
        raise AuthorizationError("No managed organizations found", 403)
    return user


async def ensure_manages(
    session: AsyncSession, user_id: str, organization_id: str, denied: str = "Forbidden"
) -> User:
    user = await get_manager(session, user_id)
    if organization_id not in user.managed_organization:
        raise AuthorizationError(denied, 403)
    return user


async def ensure_mistakes_access(session: AsyncSession, user_id: str, organization_id: str) -> User:
    """Manager check of the mistakes reports; every refusal is "Access denied"."""
    user = await UserRepository(session).get_by_id(user_id)
    if user is None or organization_id not in (user.managed_organization or []):
        raise AuthorizationError(ACCESS_DENIED, 403)
    return user


async def get_coupon_summary(session: AsyncSession, organization_year_id: str) -> Optional[Dict[str, Any]]:
    """Usage of the coupon an organization year distributes.

    Returns:
        The summary, or None when the year has no coupon
    """
    coupons = await CouponRepository(session).list_for_organization_year(organization_year_id)
    if not coupons:
        return None
    coupon = coupons[0]

    stmt = (
        select(Subscription, User)
        .join(User, User.id == Subscription.user_id, isouter=True)
        .where(Subscription.coupon_id == coupon.id)
        .order_by(Subscription.created_at)
    )
    rows = (await session.execute(stmt)).all()
    redemptions: List[Dict[str, Any]] = []
    seen = set()
    for subscription, user in rows:
        # one redemption can grant several products
        key = subscription.payment_transaction_id or subscription.id
        if key in seen:
            continue
        seen.add(key)
        redemptions.append(
            {
                "userId": subscription.user_id,
                "name": user.name if user else None,
                "email": user.email if user else None,
                "redeemedAt": subscription.created_at,
            }
        )

    members = await OrganizationYearRepository(session).members([organization_year_id])
    return {
        "couponId": coupon.id,
        "code": coupon.code,
        "couponType": coupon.type,
        "value": coupon.value,
        "uses": coupon.uses,
        "maxUses": coupon.max_uses,
        "remainingUses": max(coupon.max_uses - (coupon.uses or 0), 0),
        "isActive": coupon.is_active,
        "validFrom": coupon.valid_from,
        "validUntil": coupon.valid_until,
        "redemptions": redemptions,
        "users": [
            {"id": member.id, "name": member.name, "email": member.email, "joinedAt": member.created_at}
            for member in members
        ],
    }


async def get_organization_coupon_summary(
    session: AsyncSession, user_id: str, organization_id: str, organization_year_id: Optional[str]
) -> Dict[str, Any]:
    await ensure_manages(session, user_id, organization_id)
    if not organization_year_id:
        raise PlainTextError("organizationYearId is required", 400)
    summary = await get_coupon_summary(session, organization_year_id)
    if summary is None:
        raise PlainTextError("No coupon found for this organization year", 404)
    return summary


async def _stats_totals(session: AsyncSession, user_ids: List[str]) -> tuple[int, int]:
    if not user_ids:
        return 0, 0
    stmt = select(UserSystemStats).where(UserSystemStats.user_id.in_(user_ids))
    stats = (await session.execute(stmt)).scalars().all()
    return sum(row.experience or 0 for row in stats), sum(row.genius_score or 0 for row in stats)


async def get_managed_organizations(
    session: AsyncSession, user_id: str, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Organizations the user manages with per year activity of the current month."""
    user = await get_manager(session, user_id)
    start, end = month_bounds(now or utc_now_naive())
    years_repo = OrganizationYearRepository(session)
    organizations = await OrganizationInfoRepository(session).get_many(user.managed_organization)

    analytics = []
    for organization in organizations:
        years = await years_repo.for_organization(organization.id)
        members = await years_repo.members([year.id for year in years])

        year_analytics = []
        for year in years:
            member_ids = [member.id for member in members if member.organization_year_id == year.id]
            results = await years_repo.lesson_results(member_ids, start, end)
            total_questions = sum(result.total_questions or 0 for result in results)
            correct_answers = sum(result.right_questions or 0 for result in results)
            year_analytics.append(
                {
                    "yearId": year.id,
                    "year": year.year,
                    "totalLessons": len(results),
                    "totalQuestions": total_questions,
                    "correctAnswers": correct_answers,
                    "averageScore": correct_answers / total_questions * 100 if total_questions else 0,
                    "totalUsers": len(member_ids),
                    "activeUsers": len({result.user_id for result in results}),
                }
            )

        total_users = len(members)
        experience, genius_score = await _stats_totals(session, [member.id for member in members])
        analytics.append(
            {
                "organizationId": organization.id,
                "organizationName": organization.name,
                "contactEmail": organization.contact_email,
                "city": organization.city,
                "totalUsers": total_users,
                "averageExperience": round(experience / total_users) if total_users else 0,
                "averageGeniusScore": round(genius_score / total_users) if total_users else 0,
                "years": year_analytics,
            }
        )

    return {
        "managedOrganizations": [
            {"id": org.id, "name": org.name, "contactEmail": org.contact_email, "city": org.city}
            for org in organizations
        ],
        "analytics": analytics,
    }


async def _experience_by_user(session: AsyncSession, user_ids: List[str]) -> Dict[str, tuple[int, int]]:
    if not user_ids:
        return {}
    stmt = select(UserSystemStats).where(UserSystemStats.user_id.in_(user_ids))
    totals: Dict[str, tuple[int, int]] = {}
    for row in (await session.execute(stmt)).scalars().all():
        experience, genius_score = totals.get(row.user_id, (0, 0))
        totals[row.user_id] = (experience + (row.experience or 0), genius_score + (row.genius_score or 0))
    return totals


async def get_organization_users(
    session: AsyncSession, user_id: str, organization_id: str, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Members of every year of an organization with this month's practice.

    Each member carries the number of lessons, questions and correct
    answers recorded this month and the average score in percent, rounded
    to one decimal.

    Raises:
        AuthorizationError: 403 when the caller manages nothing or not this
            organization
    """
    await ensure_manages(session, user_id, organization_id, denied=ACCESS_DENIED)
    start, end = month_bounds(now or utc_now_naive())
    years_repo = OrganizationYearRepository(session)
    years = await years_repo.for_organization(organization_id)
    members = await years_repo.members([year.id for year in years])
    member_ids = [member.id for member in members]
    results = await years_repo.lesson_results(member_ids, start, end)
    stats = await _experience_by_user(session, member_ids)

    users = []
    for member in members:
        own = [result for result in results if result.user_id == member.id]
        total_questions = sum(result.total_questions or 0 for result in own)
        correct_answers = sum(result.right_questions or 0 for result in own)
        experience, genius_score = stats.get(member.id, (0, 0))
        users.append(
            {
                "id": member.id,
                "name": member.name,
                "email": member.email,
                "organizationYearId": member.organization_year_id,
                "experience": experience,
                "geniusScore": genius_score,
                "totalLessons": len(own),
                "totalQuestions": total_questions,
                "correctAnswers": correct_answers,
                "averageScore": round(correct_answers / total_questions * 100, 1) if total_questions else 0,
            }
        )
    return {"users": users, "totalUsers": len(users)}


async def get_organization_mistakes(
    session: AsyncSession, user_id: str, organization_id: str, organization_year_id: Optional[str] = None
) -> Dict[str, Any]:
    """Wrong answers of an organization's members grouped by topic type.

    ``organization_year_id`` narrows the members to one year. Topics of
    deleted questions are reported as ``UNKNOWN``.
    """
    await ensure_mistakes_access(session, user_id, organization_id)
    years_repo = OrganizationYearRepository(session)
    years = await years_repo.for_organization(organization_id, organization_year_id)
    members = await years_repo.members([year.id for year in years])
    rows = await UserWrongQuestionRepository(session).count_by_topic([member.id for member in members])
    return {
        "data": [
            {
                "categoryId": None,
                "categoryType": None,
                "topicType": row["topic_type"] or UNKNOWN_TOPIC,
                "wrongCount": row["count"],
            }
            for row in rows
        ]
    }


async def get_member_mistakes(
    session: AsyncSession,
    user_id: str,
    organization_id: str,
    member_id: str,
    organization_year_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Wrong answers of one member grouped by lesson category and topic type.

    Members outside the organization, or outside ``organization_year_id``
    when given, yield an empty report.
    """
    await ensure_mistakes_access(session, user_id, organization_id)
    member = await UserRepository(session).get_by_id(member_id)
    if member is None or not member.organization_year_id:
        return {"data": []}
    year = await OrganizationYearRepository(session).get_by_id(member.organization_year_id)
    if year is None or year.organization_id != organization_id:
        return {"data": []}
    if organization_year_id and organization_year_id != member.organization_year_id:
        return {"data": []}

    rows = await UserWrongQuestionRepository(session).count_by_category_and_topic(member_id)
    return {
        "data": [
            {
                "categoryId": row["category_id"],
                "categoryType": row["category_type"],
                "topicType": row["topic_type"] or UNKNOWN_TOPIC,
                "wrongCount": row["count"],
            }
            for row in rows
        ]
    }
