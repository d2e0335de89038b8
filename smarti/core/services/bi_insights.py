"""
Sales insights for the BI dashboard.

Aggregates payment transactions created in a date range. Revenue only
counts transactions whose status means the money was collected.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from smarti.core.database.repositories.billing import PaymentTransactionRepository, PlanRepository
from smarti.core.errors import MalformedPayloadError
from smarti.core.models.domain.enums import SUCCESS_PAYMENT_STATUSES, PaymentStatus
from smarti.core.models.io.bi import (
    BiByPlan,
    BiByStatus,
    BiInsights,
    BiRecentTransaction,
    BiSummary,
    BiTimeSeriesPoint,
)

RECENT_TRANSACTIONS_LIMIT = 20
UNKNOWN_PLAN_ID = "unknown"


def parse_range(start: str, end: str) -> tuple[datetime, datetime]:
    """Turn ``YYYY-MM-DD`` bounds into ``[start of from, start of the day after to)``.

    Raises:
        MalformedPayloadError: A bound is not a date or ``from`` is after ``to``
    """
    try:
        first = date.fromisoformat(start[:10])
        last = date.fromisoformat(end[:10])
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError("Invalid date range") from exc
    if first > last:
        raise MalformedPayloadError("Invalid date range")
    return datetime.combine(first, time.min), datetime.combine(last + timedelta(days=1), time.min)


async def get_bi_insights(session: AsyncSession, start: datetime, end: datetime) -> BiInsights:
    rows = await PaymentTransactionRepository(session).in_range(start, end)
    plan_ids = sorted({row.plan_id for row in rows if row.plan_id})
    plans = {plan.id: plan for plan in await PlanRepository(session).list(filters={"id": plan_ids})} if plan_ids else {}

    summary = BiSummary(total_count=len(rows))
    by_plan: Dict[str, BiByPlan] = {}
    by_status: Dict[str, int] = {}
    series: Dict[str, BiTimeSeriesPoint] = {}

    for row in rows:
        is_success = row.status in SUCCESS_PAYMENT_STATUSES
        revenue = row.total_price if is_success else 0
        if is_success:
            summary.total_revenue += row.total_price
            summary.paid_count += 1
        if row.status == PaymentStatus.failed.value:
            summary.failed_count += 1
        if row.status == PaymentStatus.created.value:
            summary.created_count += 1
        if row.status == PaymentStatus.cancelled.value:
            summary.cancelled_count += 1
        if row.book_included:
            summary.book_included_count += 1

        plan_id = row.plan_id or UNKNOWN_PLAN_ID
        plan = plans.get(row.plan_id) if row.plan_id else None
        entry = by_plan.get(plan_id)
        if entry is None:
            entry = by_plan[plan_id] = BiByPlan(
                plan_id=plan_id, plan_name=plan.name if plan else "Unknown plan", count=0, revenue=0
            )
        entry.count += 1
        entry.revenue += revenue

        by_status[row.status] = by_status.get(row.status, 0) + 1

        day = (row.created_at or start).date().isoformat()
        point = series.get(day)
        if point is None:
            point = series[day] = BiTimeSeriesPoint(date=day, count=0, revenue=0)
        point.count += 1
        point.revenue += revenue

    recent: List[BiRecentTransaction] = [
        BiRecentTransaction(
            id=row.id,
            created_at=row.created_at,
            status=row.status,
            total_price=row.total_price,
            plan_name=plans[row.plan_id].name if row.plan_id in plans else "Unknown",
            email=row.email,
        )
        for row in rows[:RECENT_TRANSACTIONS_LIMIT]
    ]

    return BiInsights(
        summary=summary,
        by_plan=list(by_plan.values()),
        by_status=[BiByStatus(status=status, count=count) for status, count in by_status.items()],
        time_series=[series[day] for day in sorted(series)],
        recent_transactions=recent,
    )
