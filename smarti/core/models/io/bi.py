"""Response models of the BI dashboard."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from .common import CamelModel


class BiLoginRequest(CamelModel):
    password: Optional[str] = None


class BiSummary(CamelModel):
    total_revenue: int = 0
    paid_count: int = 0
    failed_count: int = 0
    created_count: int = 0
    cancelled_count: int = 0
    book_included_count: int = 0
    total_count: int = 0


class BiByPlan(CamelModel):
    plan_id: str
    plan_name: str
    count: int
    revenue: int


class BiByStatus(CamelModel):
    status: str
    count: int


class BiTimeSeriesPoint(CamelModel):
    date: str
    count: int
    revenue: int


class BiRecentTransaction(CamelModel):
    id: str
    created_at: Optional[datetime] = None
    status: str
    total_price: int
    plan_name: str
    email: Optional[str] = None


class BiInsights(CamelModel):
    summary: BiSummary
    by_plan: List[BiByPlan]
    by_status: List[BiByStatus]
    time_series: List[BiTimeSeriesPoint]
    recent_transactions: List[BiRecentTransaction]
